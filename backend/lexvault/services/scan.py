# backend/lexvault/services/scan.py
import io
import time
from dataclasses import dataclass
from typing import List, Sequence

from PIL import Image, UnidentifiedImageError
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from ..exceptions import InvalidInputError
from ..utils.logging import service_logger

# Modes passed through unchanged; anything else (CMYK, YCbCr, 16-bit, ...) goes through RGB
PNG_MODES = {"1", "L", "LA", "P", "RGB", "RGBA"}


@dataclass
class ScanImage:
    """One uploaded page of a scan session"""
    filename: str
    data: bytes


@dataclass
class NormalizedPage:
    png: bytes
    width: int
    height: int


class ScanConverter:
    """Compose a batch of scanned images into one multi-page PDF"""

    @staticmethod
    def normalize(image: ScanImage, index: int) -> NormalizedPage:
        """Decode any Pillow-readable raster image and re-encode it as PNG"""
        try:
            with Image.open(io.BytesIO(image.data)) as img:
                img.load()
                if img.mode not in PNG_MODES:
                    img = img.convert("RGB")
                width, height = img.size
                buffer = io.BytesIO()
                img.save(buffer, format="PNG")
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            service_logger.warning("Failed to decode scanned image", extra={
                "index": index,
                "image_name": image.filename,
                "error": str(e)
            })
            raise InvalidInputError(
                f"Image {index + 1} ({image.filename}) could not be decoded: {e}"
            ) from e

        return NormalizedPage(png=buffer.getvalue(), width=width, height=height)

    def convert(self, images: Sequence[ScanImage]) -> bytes:
        """Build the PDF in memory: one page per image, page size = image pixel size"""
        if not images:
            raise InvalidInputError("No images uploaded")

        start_time = time.time()

        # Decode everything first so a bad image aborts before any output exists
        pages: List[NormalizedPage] = [
            self.normalize(image, idx) for idx, image in enumerate(images)
        ]

        buffer = io.BytesIO()
        pdf = canvas.Canvas(buffer)
        for page in pages:
            pdf.setPageSize((page.width, page.height))
            pdf.drawImage(
                ImageReader(io.BytesIO(page.png)),
                0, 0,
                width=page.width,
                height=page.height,
                mask="auto"
            )
            pdf.showPage()
        pdf.save()

        service_logger.info("Converted scan batch to PDF", extra={
            "page_count": len(pages),
            "execution_time_ms": round((time.time() - start_time) * 1000, 2)
        })
        return buffer.getvalue()


scan_converter = ScanConverter()
