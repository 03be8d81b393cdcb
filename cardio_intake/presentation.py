"""Stored record -> nested view used by the report screens."""

from __future__ import annotations

from typing import Any, Mapping

from .models import EcgSection, PatientSection, RecordView, TmtSection


def to_view(row: Mapping[str, Any]) -> RecordView:
    # tWaveInversion and targetHRAttained have no stored columns; they are
    # always reconstructed as False / True.
    return RecordView(
        id=row["patient_id"],
        patient=PatientSection(
            name=row["name"],
            age=row["age"],
            gender=row["gender"],
            restingHR=row["resting_hr"],
            systolicBP=row["systolic_bp"],
            diastolicBP=row["diastolic_bp"],
        ),
        ecg=EcgSection(
            stDepression=row["st_depression"],
            stSlope=row["st_slope"],
            tWaveInversion=False,
            qrsDuration=row["qrs_duration"],
            prInterval=row["pr_interval"],
        ),
        tmt=TmtSection(
            metsAchieved=row["mets_achieved"],
            maxExerciseHR=row["max_heart_rate"],
            exerciseDuration=row["exercise_duration"],
            anginaDuringExercise=row["angina"],
            targetHRAttained=True,
        ),
    )
