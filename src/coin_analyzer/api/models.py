"""
Data models for uploads to and responses from the coin analysis backend.

The backend uses the literal string "unknown" for anything the model could not
determine. It is kept as a plain string; `CoinAnalysis.is_unknown_analysis`
is the only place that interprets it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

UNKNOWN = "unknown"

UNKNOWN_ANALYSIS_MESSAGE = (
    "We couldn't identify this coin. This might be due to:\n\n"
    "• Poor lighting or image quality\n"
    "• Coin not clearly visible\n"
    "• Unusual or rare coin type\n"
    "• Image angle or focus issues\n\n"
    "Try taking a clearer photo with better lighting and ensuring the coin is centered and well-focused."
)


class _Model(BaseModel):
    # strict: a number where a string is expected is a type mismatch
    model_config = ConfigDict(strict=True, frozen=True, protected_namespaces=())


class BasicInfo(_Model):
    released_year: str
    country: str
    denomination: str
    composition: str


class ValueAssessment(_Model):
    collector_value: str
    rarity: str


class TechnicalDetails(_Model):
    mint_mark: Optional[str] = None
    rarity: str
    diameter_mm: Optional[str] = None

    @property
    def has_diameter(self) -> bool:
        return bool(self.diameter_mm) and self.diameter_mm.lower() != UNKNOWN

    @property
    def formatted_diameter(self) -> str:
        if not self.diameter_mm or self.diameter_mm.lower() == UNKNOWN:
            return "Unknown"
        try:
            return f"{float(self.diameter_mm):.1f} mm"
        except ValueError:
            return f"{self.diameter_mm} mm"


class CoinAnalysis(_Model):
    basic_info: BasicInfo
    value_assessment: ValueAssessment
    description: str
    historical_context: str
    technical_details: TechnicalDetails

    def unknown_check_fields(self) -> List[str]:
        """The nine fields that decide whether the coin was identified at all."""
        return [
            self.basic_info.released_year,
            self.basic_info.country,
            self.basic_info.denomination,
            self.basic_info.composition,
            self.value_assessment.collector_value,
            self.value_assessment.rarity,
            self.description,
            self.historical_context,
            self.technical_details.rarity,
        ]

    @property
    def is_unknown_analysis(self) -> bool:
        return all(value.lower() == UNKNOWN for value in self.unknown_check_fields())

    @property
    def unknown_analysis_message(self) -> str:
        return UNKNOWN_ANALYSIS_MESSAGE if self.is_unknown_analysis else ""


class AnalysisMetadata(_Model):
    model_used: str
    image_filename: str
    image_size_bytes: int
    processing_time: str


class CoinAnalysisResponse(_Model):
    success: bool
    timestamp: str
    coin_analysis: CoinAnalysis
    metadata: AnalysisMetadata


class AnalysisErrorResponse(_Model):
    success: bool
    error: str
    timestamp: str


# Request side

@dataclass(frozen=True)
class EncodedImage:
    """JPEG bytes ready to be uploaded.

    `filename` is a suggestion for callers that save the image. The multipart
    upload always uses the filename of the `CoinSide` the image is sent as.
    """
    data: bytes
    width: int
    height: int
    filename: str = "coin_image.jpg"
    content_type: str = "image/jpeg"

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height


class CoinSide(Enum):
    """Which side of the coin an image shows, with its multipart field and filename."""

    SINGLE = ("image", "coin_image.jpg")
    FRONT = ("front_image", "coin_front.jpg")
    BACK = ("back_image", "coin_back.jpg")

    def __init__(self, field_name: str, filename: str):
        self.field_name = field_name
        self.filename = filename


@dataclass(frozen=True)
class AnalysisRequest:
    """One or two images to be analyzed together in a single upload."""
    parts: Tuple[Tuple[CoinSide, EncodedImage], ...]

    @classmethod
    def single(cls, image: EncodedImage) -> "AnalysisRequest":
        return cls(parts=((CoinSide.SINGLE, image),))

    @classmethod
    def both_sides(cls, front: EncodedImage, back: EncodedImage) -> "AnalysisRequest":
        return cls(parts=((CoinSide.FRONT, front), (CoinSide.BACK, back)))

    @property
    def is_both_sides(self) -> bool:
        return len(self.parts) == 2

    @property
    def total_bytes(self) -> int:
        return sum(len(image.data) for _, image in self.parts)
