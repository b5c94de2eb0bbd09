"""Forensic oracles: tamper detection and text extraction behind fixed interfaces.

Oracle failures never reach the scoring code. `run_oracle` turns any failure
into a `Degraded` result carrying a neutral reading.
"""

from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar, Union

import pytesseract
from PIL import Image, ImageChops, ImageStat

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class TamperReading:
    confidence: float
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TextReading:
    text: str


NEUTRAL_TAMPER = TamperReading(confidence=0.0)
NEUTRAL_TEXT = TextReading(text="")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    degraded: bool = False


@dataclass(frozen=True)
class Degraded(Generic[T]):
    value: T
    error: str
    degraded: bool = True


OracleResult = Union[Ok[T], Degraded[T]]


def run_oracle(fn: Callable[[], T], default: T, name: str = "oracle") -> OracleResult:
    """Call an oracle; any exception becomes Degraded(default)."""
    try:
        return Ok(fn())
    except Exception as exc:
        logger.warning("Forensic oracle degraded: oracle=%s error=%s", name, exc)
        return Degraded(default, str(exc))


class TamperDetector(ABC):
    """Estimates how likely an image was digitally altered."""

    @abstractmethod
    def detect_tamper(self, path: str) -> TamperReading:
        ...


class TextExtractor(ABC):
    """Extracts printed text (OCR) from a document image."""

    @abstractmethod
    def extract_text(self, path: str) -> TextReading:
        ...


class ElaTamperDetector(TamperDetector):
    """Error level analysis: re-save as JPEG and measure the largest pixel difference.

    Edited regions recompress differently from the rest of the image, so a large
    maximum difference suggests splicing. Confidence is the max channel
    difference on a 0..255 scale.
    """

    def __init__(self, quality: int = 90) -> None:
        self.quality = quality

    def detect_tamper(self, path: str) -> TamperReading:
        with Image.open(path) as img:
            original = img.convert("RGB")
        buffer = io.BytesIO()
        original.save(buffer, "JPEG", quality=self.quality)
        buffer.seek(0)
        with Image.open(buffer) as resaved:
            diff = ImageChops.difference(original, resaved.convert("RGB"))
        extrema = diff.getextrema()
        max_diff = max(high for _, high in extrema)
        avg = sum(ImageStat.Stat(diff).mean) / 3
        return TamperReading(
            confidence=float(max_diff),
            metadata={
                "max_diff": max_diff,
                "avg_diff": round(avg, 3),
                "width": original.width,
                "height": original.height,
            },
        )


class TesseractTextExtractor(TextExtractor):
    """OCR via the Tesseract binary (pytesseract)."""

    def __init__(self, lang: str = "eng", config: str = "--psm 6") -> None:
        self.lang = lang
        self.config = config

    def extract_text(self, path: str) -> TextReading:
        with Image.open(path) as img:
            text = pytesseract.image_to_string(img, lang=self.lang, config=self.config)
        return TextReading(text=text or "")


def safe_detect_tamper(detector: TamperDetector, path: str) -> OracleResult:
    return run_oracle(lambda: detector.detect_tamper(path), NEUTRAL_TAMPER, "tamper")


def safe_extract_text(extractor: TextExtractor, path: str) -> OracleResult:
    return run_oracle(lambda: extractor.extract_text(path), NEUTRAL_TEXT, "ocr")
