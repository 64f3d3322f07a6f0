"""Database models."""

from clinic_scheduler.models.appointments import appointments
from clinic_scheduler.models.availability import doctor_availabilities
from clinic_scheduler.models.base import metadata
from clinic_scheduler.models.clinics import clinics, rooms
from clinic_scheduler.models.doctors import doctor_specialties, doctors
from clinic_scheduler.models.patients import patients

__all__ = [
    "appointments",
    "clinics",
    "doctor_availabilities",
    "doctor_specialties",
    "doctors",
    "metadata",
    "patients",
    "rooms",
]
