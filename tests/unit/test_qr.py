import io

import pytest
from PIL import Image

from certdocs.rendering.qr import BaseSymbolBuilder, QrcodeSymbolBuilder, SymbolMatrix, SymbolRasterizer

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class _CheckerBuilder(BaseSymbolBuilder):
    def build(self, payload: str, error_correction: str) -> SymbolMatrix:
        return [[(row + col) % 2 == 0 for col in range(3)] for row in range(3)]


class TestScale:
    def test_integer_scale_fits_target(self) -> None:
        assert SymbolRasterizer.scale_for(21, 256, 2) == 10

    def test_scale_never_below_one(self) -> None:
        assert SymbolRasterizer.scale_for(177, 64, 4) == 1


class TestPaint:
    def test_paints_dark_modules_black_on_white(self) -> None:
        rasterizer = SymbolRasterizer(_CheckerBuilder())

        png = rasterizer.rasterize("x", pixel_size=70, margin_modules=2, error_correction="M")

        image = Image.open(io.BytesIO(png))
        # 3 modules + 2*2 margin = 7 modules, 70 // 7 = 10 px each.
        assert image.size == (70, 70)
        assert image.getpixel((5, 5)) == 255
        assert image.getpixel((25, 25)) == 0
        assert image.getpixel((35, 25)) == 255

    def test_output_is_png(self) -> None:
        png = SymbolRasterizer(_CheckerBuilder()).rasterize(
            "x", pixel_size=30, margin_modules=0, error_correction="L"
        )

        assert png.startswith(PNG_SIGNATURE)

    def test_empty_matrix_raises(self) -> None:
        with pytest.raises(ValueError, match="empty"):
            SymbolRasterizer().paint([], pixel_size=100, margin_modules=2)


class TestQrcodeSymbolBuilder:
    def test_builds_square_matrix(self) -> None:
        matrix = QrcodeSymbolBuilder().build("https://example.com/verify?hash=" + "0" * 64, "M")

        assert len(matrix) >= 21
        assert all(len(row) == len(matrix) for row in matrix)

    def test_unknown_level_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown error correction level"):
            QrcodeSymbolBuilder().build("payload", "Z")

    def test_rasterization_is_deterministic(self) -> None:
        rasterizer = SymbolRasterizer()
        payload = "https://example.com/verify?hash=" + "ab" * 32

        first = rasterizer.rasterize(payload, pixel_size=256, margin_modules=2, error_correction="M")
        second = rasterizer.rasterize(payload, pixel_size=256, margin_modules=2, error_correction="M")

        assert first == second
