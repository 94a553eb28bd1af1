"""Tests for the analysis orchestrator and the batch runner."""

import io

import pytest
from PIL import Image

from coin_analyzer.api.client import AnalysisClient
from coin_analyzer.api.errors import InvalidRequest, NoConnectivity, ServerError
from coin_analyzer.core.service import CoinAnalysisService
from coin_analyzer.core.workers import AsyncWorkerPool, analyze_images_async

from conftest import ERROR_PAYLOAD, StaticProbe, make_config, make_image, respond_json, unknown_payload


def uploaded_size(data: bytes):
    return Image.open(io.BytesIO(data)).size


@pytest.fixture
def service(client):
    return CoinAnalysisService(client)


class TestCoinAnalysisService:
    async def test_analyze_single(self, service, backend):
        analysis = await service.analyze_single(make_image(1600, 1200))

        assert analysis.basic_info.denomination == "Quarter Dollar"
        filename, content_type, data = backend.uploads[0]["image"]
        assert filename == "coin_image.jpg"
        assert content_type == "image/jpeg"
        assert uploaded_size(data) == (800, 600)

    async def test_analyze_both_sides(self, service, backend):
        analysis = await service.analyze_both_sides(make_image(600, 600), make_image(900, 1800))

        assert not analysis.is_unknown_analysis
        upload = backend.uploads[0]
        assert set(upload) == {"front_image", "back_image"}
        assert uploaded_size(upload["front_image"][2]) == (600, 600)
        assert uploaded_size(upload["back_image"][2]) == (400, 800)

    async def test_unknown_analysis_is_returned(self, service, backend):
        backend.respond(respond_json(unknown_payload()))

        analysis = await service.analyze_single(make_image(100, 100))

        assert analysis.is_unknown_analysis
        assert analysis.unknown_analysis_message

    async def test_errors_propagate(self, service, backend):
        backend.respond(respond_json(ERROR_PAYLOAD, status=500))

        with pytest.raises(ServerError, match="boom"):
            await service.analyze_single(make_image(100, 100))

    async def test_invalid_image_is_not_uploaded(self, service, backend):
        with pytest.raises(InvalidRequest):
            await service.analyze_single(b"not an image")

        assert backend.attempts == 0

    async def test_uses_configured_image_limits(self, backend, probe):
        config = make_config(backend.base_url, max_dimension=200)

        async with AnalysisClient(config, probe=probe) as client:
            await CoinAnalysisService(client).analyze_single(make_image(1000, 500))

        assert uploaded_size(backend.uploads[0]["image"][2]) == (200, 100)

    async def test_offline(self, backend):
        async with AnalysisClient(make_config(backend.base_url), probe=StaticProbe(False)) as client:
            with pytest.raises(NoConnectivity):
                await CoinAnalysisService(client).analyze_single(make_image(10, 10))


class TestAsyncWorkerPool:
    async def test_mixed_batch(self, service, backend, tmp_path):
        paths = []
        for i in range(3):
            path = tmp_path / f"coin_{i}.jpg"
            make_image(1000, 800).save(path)
            paths.append(path)
        broken = tmp_path / "broken.jpg"
        broken.write_bytes(b"garbage")
        paths.append(broken)

        progress = []
        pool = AsyncWorkerPool(paths, service, max_concurrent=2)
        pool.on_progress = lambda result, done, total: progress.append((done, total))

        results = await pool.analyze_all()

        assert set(results) == set(paths)
        assert all(results[p].ok for p in paths[:3])
        assert not results[broken].ok
        assert isinstance(results[broken].result, InvalidRequest)
        assert backend.attempts == 3
        assert sorted(progress) == [(1, 4), (2, 4), (3, 4), (4, 4)]
        assert pool.get_progress() == (4, 4)

    async def test_convenience_wrapper(self, service, tmp_path):
        path = tmp_path / "coin.png"
        make_image(50, 50).save(path)

        results = await analyze_images_async([path], service)

        assert results[path].ok
        assert results[path].processing_time >= 0

    def test_rejects_zero_concurrency(self, service):
        with pytest.raises(ValueError):
            AsyncWorkerPool([], service, max_concurrent=0)
