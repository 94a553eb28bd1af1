"""
Image preparation and the analysis orchestrator.
"""

from .image_encoder import prepare_image, target_size
from .service import CoinAnalysisService
from .workers import AsyncWorkerPool, BatchResult, analyze_images_async

__all__ = [
    "prepare_image",
    "target_size",
    "CoinAnalysisService",
    "AsyncWorkerPool",
    "BatchResult",
    "analyze_images_async",
]
