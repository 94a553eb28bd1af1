"""
Coin Analyzer

Photograph a coin, upload it to the analysis backend, and get it identified.
"""

__version__ = "0.1.0"

from .config import BackoffPolicy, ClientConfig
from .api import (
    AnalysisClient,
    AnalysisError,
    AnalysisRequest,
    CoinAnalysis,
    CoinAnalysisResponse,
    EncodedImage,
)
from .core import CoinAnalysisService, prepare_image, analyze_images_async


def main():
    """Entry point for the coin-analyzer command."""
    from .cli import main as cli_main
    cli_main()


__all__ = [
    "BackoffPolicy",
    "ClientConfig",
    "AnalysisClient",
    "AnalysisError",
    "AnalysisRequest",
    "CoinAnalysis",
    "CoinAnalysisResponse",
    "EncodedImage",
    "CoinAnalysisService",
    "prepare_image",
    "analyze_images_async",
]
