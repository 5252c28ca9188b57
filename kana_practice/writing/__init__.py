from kana_practice.writing.capture import Stroke, StrokeStateError, WritingPad
from kana_practice.writing.geometry import NormalizedShape, Point, normalize
from kana_practice.writing.references import ReferenceCharacterEntry, ReferenceStore
from kana_practice.writing.scoring import VerificationResult, verify

__all__ = [
    "NormalizedShape",
    "Point",
    "ReferenceCharacterEntry",
    "ReferenceStore",
    "Stroke",
    "StrokeStateError",
    "VerificationResult",
    "WritingPad",
    "normalize",
    "verify",
]
