"""Verification symbol rasterization.

Symbol construction (the QR matrix) is delegated to the ``qrcode`` library;
this module only scales the matrix onto a bitmap and encodes it as PNG.
"""

import io
from abc import ABC, abstractmethod
from typing import ClassVar

import qrcode
from PIL import Image, ImageDraw
from qrcode.constants import ERROR_CORRECT_H, ERROR_CORRECT_L, ERROR_CORRECT_M, ERROR_CORRECT_Q

SymbolMatrix = list[list[bool]]


class BaseSymbolBuilder(ABC):
    """Contract for symbol generators: payload -> square matrix of dark modules."""

    @abstractmethod
    def build(self, payload: str, error_correction: str) -> SymbolMatrix:
        """Return the module matrix without any quiet zone."""


class QrcodeSymbolBuilder(BaseSymbolBuilder):
    """Builds QR matrices with the ``qrcode`` package."""

    LEVELS: ClassVar[dict[str, int]] = {
        "L": ERROR_CORRECT_L,
        "M": ERROR_CORRECT_M,
        "Q": ERROR_CORRECT_Q,
        "H": ERROR_CORRECT_H,
    }

    def build(self, payload: str, error_correction: str) -> SymbolMatrix:
        level = self.LEVELS.get(error_correction.upper())
        if level is None:
            raise ValueError(
                f"Unknown error correction level '{error_correction}'. "
                f"Choose from: {list(self.LEVELS)}"
            )
        code = qrcode.QRCode(error_correction=level, border=0)
        code.add_data(payload)
        code.make(fit=True)
        return [[bool(module) for module in row] for row in code.get_matrix()]


class SymbolRasterizer:
    """Paints a symbol matrix as a PNG bitmap with a white quiet zone."""

    def __init__(self, builder: BaseSymbolBuilder | None = None) -> None:
        self._builder = builder or QrcodeSymbolBuilder()

    def rasterize(
        self,
        payload: str,
        *,
        pixel_size: int,
        margin_modules: int,
        error_correction: str,
    ) -> bytes:
        matrix = self._builder.build(payload, error_correction)
        return self.paint(matrix, pixel_size=pixel_size, margin_modules=margin_modules)

    @staticmethod
    def scale_for(dimension: int, pixel_size: int, margin_modules: int) -> int:
        """Largest integer pixels-per-module that fits ``pixel_size`` (at least 1)."""
        total_modules = dimension + 2 * margin_modules
        return max(1, pixel_size // total_modules)

    def paint(self, matrix: SymbolMatrix, *, pixel_size: int, margin_modules: int) -> bytes:
        dimension = len(matrix)
        if dimension == 0:
            raise ValueError("Symbol matrix is empty")
        scale = self.scale_for(dimension, pixel_size, margin_modules)
        side = (dimension + 2 * margin_modules) * scale

        image = Image.new("L", (side, side), 255)
        draw = ImageDraw.Draw(image)
        for row_index, row in enumerate(matrix):
            for col_index, dark in enumerate(row):
                if not dark:
                    continue
                x0 = (col_index + margin_modules) * scale
                y0 = (row_index + margin_modules) * scale
                draw.rectangle((x0, y0, x0 + scale - 1, y0 + scale - 1), fill=0)

        buffer = io.BytesIO()
        image.save(buffer, format="PNG", optimize=False)
        return buffer.getvalue()
