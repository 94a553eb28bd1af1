"""
Analysis orchestrator: prepare the image(s), upload them, unwrap the analysis.

All retry and validation logic lives in `AnalysisClient`; this layer only
delegates.
"""

import asyncio
import functools
from typing import Optional

from ..api.client import AnalysisClient
from ..api.models import AnalysisRequest, CoinAnalysis, CoinSide, EncodedImage
from ..config import ClientConfig
from ..utils.log_utils import get_logger
from .image_encoder import ImageSource, prepare_image

logger = get_logger(__name__)


class CoinAnalysisService:
    """Entry point for the rest of the application."""

    def __init__(self, client: AnalysisClient, config: Optional[ClientConfig] = None):
        self.client = client
        self.config = config or client.config

    async def _prepare(self, image: ImageSource, side: CoinSide) -> EncodedImage:
        # Decoding and resizing is CPU-bound, so run it in the default thread pool
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            functools.partial(
                prepare_image,
                image,
                max_dimension=self.config.max_dimension,
                quality=self.config.jpeg_quality,
                filename=side.filename,
            ),
        )

    async def analyze_single(self, image: ImageSource) -> CoinAnalysis:
        encoded = await self._prepare(image, CoinSide.SINGLE)
        response = await self.client.analyze(AnalysisRequest.single(encoded))
        return response.coin_analysis

    async def analyze_both_sides(self, front: ImageSource, back: ImageSource) -> CoinAnalysis:
        logger.info("Starting both sides analysis")
        front_encoded, back_encoded = await asyncio.gather(
            self._prepare(front, CoinSide.FRONT),
            self._prepare(back, CoinSide.BACK),
        )
        logger.debug("Front image %dx%d, back image %dx%d", *front_encoded.size, *back_encoded.size)
        response = await self.client.analyze(AnalysisRequest.both_sides(front_encoded, back_encoded))
        return response.coin_analysis
