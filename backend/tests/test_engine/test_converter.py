"""End-to-end conversion tests against the stub rendering engine."""

from __future__ import annotations

import asyncio

import httpx
import pytest
from psd_tools import PSDImage

from svg2psd.engine.converter import LayeredImageConverter, cleanup_temp_file
from svg2psd.errors import CompositionError, FetchError, HandleCreationError
from svg2psd.models.requests import ConversionOptions
from tests.conftest import (
    EXAMPLE_SVG,
    GROUPED_SVG,
    IDENTIFIED_SVG,
    NO_PRIMITIVES_SVG,
    StubEngine,
    make_config,
)


def _convert(converter: LayeredImageConverter, markup: str, options: ConversionOptions | None = None):
    async def scenario():
        async with converter:
            return await converter.convert_document(markup, options)

    return asyncio.run(scenario())


def _mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# 1. Conversion
# ---------------------------------------------------------------------------


class TestConvertDocument:
    def test_example_document(self, converter):
        path = _convert(converter, EXAMPLE_SVG)
        psd = PSDImage.open(path)
        assert (psd.width, psd.height) == (100, 50)
        assert len(psd) == 2
        # "dot" paints over "bg", so it sits on top of the stack
        assert psd[-1].name == "dot"
        assert psd[0].name == "bg"

    def test_file_lands_in_temp_dir(self, converter, tmp_path):
        path = _convert(converter, EXAMPLE_SVG)
        assert path.parent == tmp_path
        assert path.name.startswith("svg-to-psd-")

    def test_repeated_conversions_are_independent(self, converter):
        async def scenario():
            async with converter:
                first = await converter.convert_document(GROUPED_SVG)
                second = await converter.convert_document(GROUPED_SVG)
            return first, second

        first, second = asyncio.run(scenario())
        assert first != second
        names = [[layer.name for layer in PSDImage.open(p)] for p in (first, second)]
        assert names[0] == names[1]
        assert len(names[0]) == 5

    def test_whole_document_fallback(self, converter):
        with pytest.warns(UserWarning):
            path = _convert(converter, NO_PRIMITIVES_SVG)
        psd = PSDImage.open(path)
        assert [layer.name for layer in psd] == ["full_document"]
        assert (psd.width, psd.height) == (40, 40)

    def test_options_override_canvas(self, converter):
        options = ConversionOptions(width=60, height=30, background_color="#fff")
        path = _convert(converter, IDENTIFIED_SVG, options)
        psd = PSDImage.open(path)
        assert (psd.width, psd.height) == (60, 30)
        assert [layer.name for layer in psd] == ["background", "sky", "sun"]

    def test_concurrent_conversions(self, tmp_path):
        engine = StubEngine()
        converter = LayeredImageConverter(config=make_config(tmp_path), engine=engine)

        async def scenario():
            async with converter:
                return await asyncio.gather(
                    *(converter.convert_document(svg) for svg in (EXAMPLE_SVG, GROUPED_SVG, IDENTIFIED_SVG))
                )

        paths = asyncio.run(scenario())
        assert len(set(paths)) == 3
        assert engine.violations == 0
        assert engine.max_active <= make_config(tmp_path).max_handles


# ---------------------------------------------------------------------------
# 2. Degradation
# ---------------------------------------------------------------------------


class TestDegradation:
    def test_one_failed_layer_dropped(self, tmp_path):
        engine = StubEngine(fail_markers=('id="dot"',))
        converter = LayeredImageConverter(config=make_config(tmp_path), engine=engine)
        psd = PSDImage.open(_convert(converter, EXAMPLE_SVG))
        assert [layer.name for layer in psd] == ["bg"]

    def test_total_failure_leaves_no_file(self, tmp_path):
        engine = StubEngine(fail_markers=("<svg",))
        converter = LayeredImageConverter(config=make_config(tmp_path), engine=engine)
        with pytest.raises(CompositionError):
            _convert(converter, EXAMPLE_SVG)
        assert list(tmp_path.iterdir()) == []

    def test_engine_unavailable(self, tmp_path):
        engine = StubEngine()
        engine.fail_start = True
        converter = LayeredImageConverter(config=make_config(tmp_path), engine=engine)
        with pytest.raises(HandleCreationError):
            _convert(converter, EXAMPLE_SVG)

    def test_unparseable_input_still_converts(self, converter):
        with pytest.warns(UserWarning):
            path = _convert(converter, "not markup")
        psd = PSDImage.open(path)
        assert [layer.name for layer in psd] == ["full_document"]
        assert (psd.width, psd.height) == (300, 300)


# ---------------------------------------------------------------------------
# 3. Remote markup
# ---------------------------------------------------------------------------


class TestConvertUrl:
    def _converter(self, tmp_path, handler) -> LayeredImageConverter:
        return LayeredImageConverter(
            config=make_config(tmp_path),
            engine=StubEngine(),
            http_client=_mock_client(handler),
        )

    def _convert_url(self, converter, url="https://example.com/a.svg"):
        async def scenario():
            async with converter:
                return await converter.convert_url(url)

        return asyncio.run(scenario())

    def test_success(self, tmp_path):
        converter = self._converter(tmp_path, lambda request: httpx.Response(200, text=EXAMPLE_SVG))
        psd = PSDImage.open(self._convert_url(converter))
        assert len(psd) == 2

    def test_http_error(self, tmp_path):
        converter = self._converter(tmp_path, lambda request: httpx.Response(404, text="missing"))
        with pytest.raises(FetchError) as excinfo:
            self._convert_url(converter)
        assert excinfo.value.status_code == 404

    def test_not_svg(self, tmp_path):
        converter = self._converter(tmp_path, lambda request: httpx.Response(200, text="<html></html>"))
        with pytest.raises(FetchError, match="valid SVG"):
            self._convert_url(converter)

    def test_transport_error(self, tmp_path):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        converter = self._converter(tmp_path, handler)
        with pytest.raises(FetchError) as excinfo:
            self._convert_url(converter)
        assert excinfo.value.status_code is None


# ---------------------------------------------------------------------------
# 4. Lifecycle helpers
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_cleanup_temp_file(self, converter):
        path = _convert(converter, EXAMPLE_SVG)
        assert converter.cleanup_temp_file(path)
        assert not path.exists()
        # A second removal only logs
        assert cleanup_temp_file(path) is False

    def test_initialize_and_close(self, converter, stub_engine):
        async def scenario():
            await converter.initialize_for_parallel_conversion()
            idle = converter.pool.num_idle
            await converter.close_engine()
            return idle

        assert asyncio.run(scenario()) == 2
        assert converter.pool.closed
        assert not stub_engine.is_running

    def test_resolve_canvas_clamps(self, tmp_path):
        converter = LayeredImageConverter(config=make_config(tmp_path, max_canvas_size=500), engine=StubEngine())
        from svg2psd.models.document import VectorDocument

        document = VectorDocument(markup="<svg/>", width=100, height=50)
        assert converter.resolve_canvas(document, ConversionOptions()) == (100, 50)
        assert converter.resolve_canvas(document, ConversionOptions(width=9000)) == (500, 50)
