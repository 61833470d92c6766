"""
Pytest configuration and fixtures for the student records service.
"""
import os
from datetime import datetime, timedelta, timezone

import pytest

# Set before config is imported anywhere.
os.environ.setdefault("STUDENT_STORE", "memory")

from routes.students import InMemoryStudents  # noqa: E402

BASE_TIME = datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_students():
    """Four records; Cici has no age."""
    return [
        {
            "id": "s1",
            "name": "Ana",
            "email": "ana@example.com",
            "age": 20,
            "address": "Jl. Merdeka 25",
            "createdAt": BASE_TIME,
            "updatedAt": BASE_TIME,
        },
        {
            "id": "s2",
            "name": "Budi",
            "email": "budi@school.id",
            "age": 25,
            "address": "Bandung",
            "createdAt": BASE_TIME + timedelta(days=1),
            "updatedAt": BASE_TIME + timedelta(days=1),
        },
        {
            "id": "s3",
            "name": "Cici",
            "email": "cici@example.com",
            "address": "Jakarta",
            "createdAt": BASE_TIME + timedelta(days=2),
            "updatedAt": BASE_TIME + timedelta(days=2),
        },
        {
            "id": "s4",
            "name": "dewi",
            "email": "dewi25@mail.com",
            "age": 31,
            "address": "Surabaya",
            "createdAt": BASE_TIME + timedelta(days=3),
            "updatedAt": BASE_TIME + timedelta(days=3),
        },
    ]


@pytest.fixture
def many_students():
    """Twelve records for pagination checks."""
    return [
        {
            "id": f"m{i:02d}",
            "name": f"Student {i:02d}",
            "email": f"student{i:02d}@example.com",
            "age": 18 + (i % 5),
            "address": "Yogyakarta",
            "createdAt": BASE_TIME + timedelta(hours=i),
            "updatedAt": BASE_TIME + timedelta(hours=i),
        }
        for i in range(12)
    ]


@pytest.fixture
def store(sample_students):
    return InMemoryStudents(sample_students)


@pytest.fixture
def student_input():
    return {"name": "Eka", "email": "eka@example.com", "age": 22, "address": "Medan"}
