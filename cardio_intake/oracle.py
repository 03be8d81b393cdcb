"""
Risk scoring through the Gemini API.

The model is treated as an opaque oracle: this module only renders the
measurements into the prompt and validates the JSON that comes back against
AnalysisResult. No score is computed locally.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Any, Optional

from google import genai
from google.genai import types
from google.genai.errors import APIError
from pydantic import ValidationError

from .config import Settings
from .errors import OracleError
from .models import AnalysisRequest, AnalysisResult

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
BASE_DELAY_SECONDS = 2.0

PROMPT_TEMPLATE = """
Perform a clinical-grade heart disease risk analysis based on the following patient data:

Patient: {age}yo {gender}, Resting HR: {resting_hr}bpm, BP: {systolic}/{diastolic}mmHg.
ECG Findings: ST Depression: {st_depression}mm, ST Slope: {st_slope}, T-Wave Inversion: {t_wave}, QRS: {qrs}ms, PR: {pr}ms.
TMT Results: METs: {mets}, Max HR: {max_hr}bpm, Duration: {duration}min, Angina: {angina}, Target HR Attained: {target_hr}.

Using Explainable AI (XAI) principles, calculate:
1. Risk Score (0-100)
2. Potential conditions (e.g. CAD, Ischemia, LVH, etc.)
3. Detailed medical explanation for the prediction.
4. Feature Importance (which data points contributed most to the risk).
5. Home remedies & lifestyle recommendations (Diet, Herbs, Lifestyle).
"""


def _flag(value: bool) -> str:
    return "true" if value else "false"


def build_prompt(request: AnalysisRequest) -> str:
    patient, ecg, tmt = request.patient, request.ecg, request.tmt
    return PROMPT_TEMPLATE.format(
        age=patient.age,
        gender=patient.gender,
        resting_hr=patient.restingHR,
        systolic=patient.systolicBP,
        diastolic=patient.diastolicBP,
        st_depression=ecg.stDepression,
        st_slope=ecg.stSlope,
        t_wave=_flag(ecg.tWaveInversion),
        qrs=ecg.qrsDuration,
        pr=ecg.prInterval,
        mets=tmt.metsAchieved,
        max_hr=tmt.maxExerciseHR,
        duration=tmt.exerciseDuration,
        angina=_flag(tmt.anginaDuringExercise),
        target_hr=_flag(tmt.targetHRAttained),
    ).strip()


class RiskOracle:
    def __init__(self, client: Any, model: str, sleep=time.sleep):
        self.client = client
        self.model = model
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["RiskOracle"]:
        """None when no API key is configured."""
        if not settings.gemini_api_key:
            logger.warning("GEMINI_API_KEY not set; risk analysis is disabled")
            return None
        return cls(genai.Client(api_key=settings.gemini_api_key), settings.gemini_model)

    def _generate(self, prompt: str) -> Any:
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=AnalysisResult,
        )
        for attempt in range(MAX_ATTEMPTS):
            try:
                return self.client.models.generate_content(
                    model=self.model, contents=prompt, config=config
                )
            except APIError as e:
                # 503 means the model is overloaded; anything else is final
                if e.code != 503 or attempt == MAX_ATTEMPTS - 1:
                    raise OracleError(f"gemini request failed: {e}") from e
                delay = BASE_DELAY_SECONDS * (2 ** attempt) + random.uniform(0, 1)
                logger.warning(
                    "gemini overloaded, retrying in %.2fs (attempt %d/%d)",
                    delay, attempt + 1, MAX_ATTEMPTS,
                )
                self._sleep(delay)

    def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        response = self._generate(build_prompt(request))
        try:
            result = AnalysisResult.model_validate_json(response.text or "{}")
        except ValidationError as e:
            raise OracleError("Failed to parse AI analysis") from e

        logger.info("risk analysis complete: score=%s", result.riskScore)
        return result
