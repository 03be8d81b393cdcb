import io

import pandas as pd


def _csv(text: str):
    return {"file": ("patients.csv", text.encode("utf-8"), "text/csv")}


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_upload_csv_maps_rows_and_defaults(client):
    raw = "Name,Age,Sex,HR\nJane Doe,52,F,68\n,,,\n"
    r = client.post("/upload", files=_csv(raw))
    assert r.status_code == 200

    first, second = r.json()
    assert first["id"] == "P-1"
    assert first["patient"] == {
        "name": "Jane Doe",
        "age": 52,
        "gender": "Female",
        "restingHR": 68,
        "systolicBP": 120,
        "diastolicBP": 80,
    }
    assert first["ecg"] == {
        "stDepression": 0.0,
        "stSlope": "Upsloping",
        "tWaveInversion": False,
        "qrsDuration": 90,
        "prInterval": 160,
    }
    assert first["tmt"] == {
        "metsAchieved": 10.0,
        "maxExerciseHR": 160,
        "exerciseDuration": 9,
        "anginaDuringExercise": False,
        "targetHRAttained": True,
    }

    assert second["id"] == "P-2"
    assert second["patient"]["name"] == "Patient 2"
    assert second["patient"]["age"] == 45
    assert second["patient"]["gender"] == "Male"
    assert second["patient"]["restingHR"] == 72


def test_upload_xlsx(client):
    buf = io.BytesIO()
    pd.DataFrame(
        {
            "Patient ID": ["MRN-7", "MRN-8"],
            "Full Name": ["Ann Lee", "Bo Park"],
            "ST Depression": [1.5, 0.5],
            "Exercise Angina": ["Yes", "No"],
        }
    ).to_excel(buf, index=False)
    files = {"file": ("batch.xlsx", buf.getvalue(), "application/octet-stream")}

    r = client.post("/upload", files=files)
    assert r.status_code == 200
    data = r.json()
    assert [d["id"] for d in data] == ["MRN-7", "MRN-8"]
    assert data[0]["patient"]["name"] == "Ann Lee"
    assert data[0]["ecg"]["stDepression"] == 1.5
    assert data[0]["tmt"]["anginaDuringExercise"] is True
    assert data[1]["tmt"]["anginaDuringExercise"] is False


def test_upload_csv_numeric_angina(client):
    r = client.post("/upload", files=_csv("Name,Angina,CAD_Presence\nA,1,\nB,0,1\n"))
    assert r.status_code == 200
    assert [d["tmt"]["anginaDuringExercise"] for d in r.json()] == [True, False]


def test_upload_without_file_is_rejected(client):
    r = client.post("/upload")
    assert r.status_code == 400
    assert r.json()["detail"] == "No file uploaded"


def test_upload_unsupported_type(client):
    files = {"file": ("notes.txt", b"Name\nJane\n", "text/plain")}
    r = client.post("/upload", files=files)
    assert r.status_code == 422


def test_upload_corrupt_workbook(client):
    files = {"file": ("broken.xlsx", b"definitely not a zip", "application/octet-stream")}
    r = client.post("/upload", files=files)
    assert r.status_code == 422


def test_upload_empty_sheet_persists_nothing(client):
    r = client.post("/upload", files=_csv("Name,Age\n"))
    assert r.status_code == 400
    assert r.json()["detail"] == "Empty file"
    assert client.get("/records").json() == []


def test_records_list_and_clear(client):
    client.post("/upload", files=_csv("Name\nA\nB\n"))
    client.post("/upload", files=_csv("Name\nC\n"))

    names = [r["patient"]["name"] for r in client.get("/records").json()]
    assert names == ["C", "A", "B"]

    r = client.delete("/records")
    assert r.status_code == 200
    assert r.json() == {"message": "Dataset cleared successfully", "deleted": 3}
    assert client.get("/records").json() == []


def test_persistence_failure_returns_500(client, store, monkeypatch):
    from cardio_intake.errors import PersistenceError

    def fail(records):
        raise PersistenceError("database down")

    monkeypatch.setattr(store, "insert_batch", fail)
    r = client.post("/upload", files=_csv("Name\nA\n"))
    assert r.status_code == 500
    assert r.json()["detail"] == "Failed to process and save file data"
