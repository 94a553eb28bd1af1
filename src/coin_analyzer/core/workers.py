import asyncio
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from ..api.errors import AnalysisError
from ..api.models import CoinAnalysis
from ..utils.log_utils import get_logger
from .service import CoinAnalysisService

logger = get_logger(__name__)


@dataclass
class BatchResult:
    """Result of analyzing one image file, with timing."""
    path: Path
    result: Union[CoinAnalysis, AnalysisError]
    processing_time: float

    @property
    def ok(self) -> bool:
        return not isinstance(self.result, AnalysisError)


class AsyncWorkerPool:
    """
    Analyze many independent coin images concurrently.

    Each image is its own analysis call with its own retries; the semaphore only
    bounds how many uploads are in flight. A failed image never cancels the others.
    """

    def __init__(
        self,
        image_paths: List[Path],
        service: CoinAnalysisService,
        max_concurrent: int = 4,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self.image_paths = list(image_paths)
        self.service = service
        self.max_concurrent = max_concurrent

        self.results: Dict[Path, BatchResult] = {}
        self.completed_count = 0
        self.total_count = len(self.image_paths)

        self.semaphore = asyncio.Semaphore(max_concurrent)
        self.on_progress: Optional[Callable[[BatchResult, int, int], None]] = None

    async def analyze_all(self) -> Dict[Path, BatchResult]:
        """
        Analyze all images, at most `max_concurrent` at a time.

        Returns:
            Dictionary mapping image paths to results.
        """
        logger.info(
            "Starting analysis of %d images with max %d concurrent requests",
            self.total_count, self.max_concurrent,
        )
        await asyncio.gather(*(self._analyze_single_image(path) for path in self.image_paths))
        logger.info("Completed analysis of %d/%d images", self.completed_count, self.total_count)
        return self.results

    async def _analyze_single_image(self, path: Path) -> None:
        async with self.semaphore:
            start_time = time.time()
            logger.debug("Analyzing %s", path.name)
            try:
                result: Union[CoinAnalysis, AnalysisError] = await self.service.analyze_single(path)
            except AnalysisError as e:
                logger.error("Failed to analyze %s: %s", path.name, e)
                result = e
            processing_time = time.time() - start_time

        batch_result = BatchResult(path=path, result=result, processing_time=processing_time)
        self.results[path] = batch_result
        self.completed_count += 1
        logger.debug("Completed %s in %.2fs", path.name, processing_time)
        if self.on_progress:
            self.on_progress(batch_result, self.completed_count, self.total_count)

    def get_progress(self):
        """Get current progress (completed, total)."""
        return self.completed_count, self.total_count


async def analyze_images_async(
    image_paths: List[Path],
    service: CoinAnalysisService,
    max_concurrent: int = 4,
) -> Dict[Path, BatchResult]:
    """Convenience wrapper around AsyncWorkerPool."""
    pool = AsyncWorkerPool(image_paths, service, max_concurrent=max_concurrent)
    return await pool.analyze_all()
