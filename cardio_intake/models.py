from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, Field


class PatientSection(BaseModel):
    name: str
    age: int
    gender: Literal["Male", "Female", "Other"]
    restingHR: int
    systolicBP: int
    diastolicBP: int


class EcgSection(BaseModel):
    stDepression: float
    # Upsloping | Flat | Downsloping by convention; uploaded free text is kept as-is
    stSlope: str
    tWaveInversion: bool = False
    qrsDuration: int
    prInterval: int


class TmtSection(BaseModel):
    metsAchieved: float
    maxExerciseHR: int
    exerciseDuration: int
    anginaDuringExercise: bool
    targetHRAttained: bool = True


class RecordView(BaseModel):
    id: str
    patient: PatientSection
    ecg: EcgSection
    tmt: TmtSection


class AnalysisRequest(BaseModel):
    patient: PatientSection
    ecg: EcgSection
    tmt: TmtSection


class FeatureImpact(BaseModel):
    feature: str
    impact: float


class Recommendations(BaseModel):
    diet: List[str]
    herbs: List[str]
    lifestyle: List[str]


class AnalysisResult(BaseModel):
    riskScore: float = Field(ge=0, le=100)
    potentialConditions: List[str]
    explanation: str
    featureImportance: List[FeatureImpact]
    recommendations: Recommendations


class ClearResponse(BaseModel):
    message: str = "Dataset cleared successfully"
    deleted: int = 0


class HealthResponse(BaseModel):
    ok: bool = True
