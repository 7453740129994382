from __future__ import annotations

import os


# =========================
# Clinic identity
# =========================
CLINIC_NAME = os.getenv("CLINICFLOW_CLINIC_NAME", "Chandrika Hospital")
CLINIC_SHORT_NAME = os.getenv("CLINICFLOW_CLINIC_SHORT_NAME", "Chandrika")
CLINICIAN_NAME = os.getenv("CLINICFLOW_CLINICIAN_NAME", "Dr. Prafulla Bidwe")


# =========================
# Scheduling
# =========================
MAX_CALENDAR_DAYS = int(os.getenv("CLINICFLOW_MAX_CALENDAR_DAYS", "365"))
DEFAULT_DURATION_DAYS = int(os.getenv("CLINICFLOW_DEFAULT_DURATION_DAYS", "10"))
DEFAULT_SESSION_MINUTES = int(os.getenv("CLINICFLOW_DEFAULT_SESSION_MINUTES", "15"))

# Planner vocabulary. The AI is restricted to the first four machines.
HOSPITAL_THERAPIES = [
    "Shockwave Therapy",
    "Laser Therapy",
    "Ultrasound Therapy",
    "IFT Therapy",
    "Manual Mobilization",
    "TENS Therapy",
]
AI_THERAPIES = HOSPITAL_THERAPIES[:4]
DEFAULT_THERAPY = HOSPITAL_THERAPIES[2]


# =========================
# Radiology / film stock
# =========================
LOW_FILM_THRESHOLD = int(os.getenv("CLINICFLOW_LOW_FILM_THRESHOLD", "10"))
DEFAULT_FILM_COUNT = int(os.getenv("CLINICFLOW_DEFAULT_FILM_COUNT", "50"))

XRAY_PROJECTIONS = [
    "Chest PA",
    "Cervical Spine",
    "Lumbar Spine",
    "Shoulder",
    "Elbow",
    "Wrist",
    "Hand",
    "Hip",
    "Knee",
    "Ankle",
    "Foot",
    "Pelvis",
]
