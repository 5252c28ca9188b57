from __future__ import annotations

from pydantic import BaseModel, Field


class PointModel(BaseModel):
    x: float = Field(allow_inf_nan=False)
    y: float = Field(allow_inf_nan=False)


class StrokeModel(BaseModel):
    points: list[PointModel] = Field(min_length=1)
    color: str | None = None


class SessionCreateRequest(BaseModel):
    character: str
    mode: str = Field(default="PRACTICE")
    romaji: str | None = None
    category: str | None = None


class TargetUpdateRequest(BaseModel):
    character: str
    romaji: str | None = None
    category: str | None = None


class VerifyRequest(BaseModel):
    character: str
    strokes: list[StrokeModel] = Field(default_factory=list)
    category: str | None = None


class ProgressReviewRequest(BaseModel):
    character: str
    quality: int | None = Field(default=None, ge=1, le=5)
    accuracy: float | None = Field(default=None, ge=0, le=1)
    category: str | None = None


class TTSRequest(BaseModel):
    text: str | None = None
    character: str | None = None
    voice: str | None = None
