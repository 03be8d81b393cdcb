"""
Deterministic ingestion rules.

Alias lists are ordered by preference: the first alias found in a row wins,
regardless of where its column sits in the sheet. Adding a spreadsheet
vocabulary means editing these tables, not the parsers.
"""

SUPPORTED_EXTENSIONS = (".csv", ".xls", ".xlsx")
CSV_DELIMITERS = [",", ";", "\t", "|"]

FIELD_ALIASES = {
    "patient_id": ("PatientID", "ID", "MRN"),
    "name": ("Name", "PatientName", "FullName", "Patient", "PatientID"),
    "age": ("Age",),
    "gender": ("Gender", "Sex"),
    "resting_hr": ("RestingHR", "HeartRate", "HR", "RestHR"),
    "systolic_bp": ("SystolicBP", "BPSys", "BP_Systolic", "Systolic"),
    "diastolic_bp": ("DiastolicBP", "BPDia", "BP_Diastolic", "Diastolic"),
    "st_depression": ("STDepression", "ST_Depression", "ST_Change", "Depression"),
    "st_slope": ("ST_Slope", "Slope"),
    "qrs_duration": ("QRSDuration", "QRS_Duration", "QRS"),
    "pr_interval": ("PRInterval", "PR_Interval", "PR"),
    "mets_achieved": ("METs", "METsAchieved", "ExerciseMETs"),
    "max_heart_rate": ("MaxHeartRate", "MaxHR", "ExerciseHR"),
    "exercise_duration": ("ExerciseDuration", "Duration"),
    "angina": ("Angina", "ExerciseAngina", "CAD_Presence"),
}

# Only a column named Angina counts a numeric 1 as angina; ExerciseAngina and
# CAD_Presence need a yes-like value.
ANGINA_NUMERIC_ALIASES = ("Angina",)

# patient_id and name default to index-based text, see PATIENT_ID_FORMAT / NAME_FORMAT.
FIELD_DEFAULTS = {
    "age": 45,
    "gender": "Male",
    "resting_hr": 72,
    "systolic_bp": 120,
    "diastolic_bp": 80,
    "st_depression": 0.0,
    "st_slope": "Upsloping",
    "qrs_duration": 90,
    "pr_interval": 160,
    "mets_achieved": 10.0,
    "max_heart_rate": 160,
    "exercise_duration": 9,
    "angina": False,
}

PATIENT_ID_FORMAT = "P-{index}"
NAME_FORMAT = "Patient {index}"

INTEGER_FIELDS = (
    "age",
    "resting_hr",
    "systolic_bp",
    "diastolic_bp",
    "qrs_duration",
    "pr_interval",
    "max_heart_rate",
    "exercise_duration",
)
FLOAT_FIELDS = ("st_depression", "mets_achieved")
