"""Kodex AI — multi-provider request orchestration for code generation and analysis."""

__version__ = "0.1.0"
