"""Shared test fixtures and configuration."""

from __future__ import annotations

import pytest
from unittest.mock import MagicMock

from daycare_agent.config import Settings
from daycare_agent.gateway import DataGateway
from daycare_agent.models import Caller
from daycare_agent.store import InMemoryDocumentStore
from daycare_agent.tools import ToolContext, build_registry
from tests.helpers import local


@pytest.fixture
def now():
    """Wednesday 19 November 2025, 10:00 in Jakarta."""
    return local(2025, 11, 19, 10, 0)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        google_api_key="test-key",
        store_backend="memory",
        checkpointer_backend="memory",
        recursion_limit=15,
        turn_timeout_seconds=5.0,
        chatbot_roles="Parent,Admin",
        timezone="Asia/Jakarta",
        system_prompt=None,
    )


@pytest.fixture
def mock_firestore_client():
    """Create a mock Firestore client."""
    client = MagicMock()
    return client


@pytest.fixture
def seed_documents():
    """A small daycare: two parents, three children, one admin, two teachers."""
    return {
        "users": [
            {"id": "parent-1", "name": "Ibu Dewi", "role": "Parent"},
            {"id": "parent-2", "name": "Bapak Hadi", "role": "Parent"},
            {"id": "parent-3", "name": "Ibu Lestari", "role": "Parent"},
            {"id": "admin-1", "name": "Admin Sekolah", "role": "Admin"},
            {"id": "teacher-1", "name": "Bu Rina", "role": "Teacher", "phone": "0812"},
            {"id": "teacher-2", "name": "Pak Joko", "role": "Teacher", "phone": "0813"},
        ],
        "children": [
            {"id": "child-1", "name": "Budi", "gender": "Laki-laki", "parent_id": "parent-1"},
            {
                "id": "child-2",
                "name": "Sari",
                "gender": "Perempuan",
                "parent_id": "parent-1",
                "medical_notes": "Alergi kacang",
            },
            {"id": "child-3", "name": "Andi", "gender": "Laki-laki", "parent_id": "parent-2"},
        ],
        "dailyReports": [
            {
                "id": "report-1",
                "child_id": "child-1",
                "date": local(2025, 11, 17, 15),
                "theme": "Binatang",
                "sub_theme": "Binatang Laut",
                "physical_motor": "Berenang gaya bebas",
                "cognitive": "Menghitung ikan",
                "social_emotional": "Bermain bersama",
                "meals": {"snack": "Pisang", "lunch": "Nasi ayam"},
                "special_notes": "Sedikit batuk",
            },
            {
                "id": "report-2",
                "child_id": "child-1",
                "date": local(2025, 11, 18, 15),
                "theme": "Binatang",
                "sub_theme": "Binatang Darat",
                "physical_motor": "Melompat",
                "cognitive": "Mengenal warna",
                "social_emotional": "Berbagi mainan",
                "meals": {"snack": "Pisang", "lunch": "Sup sayur"},
                "special_notes": "",
            },
            {
                "id": "report-3",
                "child_id": "child-2",
                "date": local(2025, 10, 20, 15),
                "theme": "Keluarga",
                "sub_theme": "Rumahku",
                "physical_motor": "Menari",
                "meals": {"snack": "Roti", "lunch": "Nasi ikan"},
            },
            {
                "id": "report-4",
                "child_id": "child-3",
                "date": local(2025, 11, 18, 15),
                "theme": "Binatang",
                "sub_theme": "Binatang Darat",
            },
        ],
        "semesterReports": [
            {
                "id": "semester-1",
                "child_id": "child-1",
                "semester": "2025-1",
                "religious_moral": {"berdoa": "Konsisten", "berdoa_keterangan": "Sudah hafal doa makan"},
                "cognitive": {"angka": "Belum Konsisten"},
                "fine_motor": {"menggunting": "Bantuan Verbal"},
            },
            {
                "id": "semester-2",
                "child_id": "child-1",
                "semester": "2025-2",
                "religious_moral": {"berdoa": "Konsisten"},
                "social_emotional": {"berbagi": "Konsisten", "antri": "Tidak Teramati"},
                "gross_motor": {"melompat": "Mandiri"},
                "independence": {"makan": "Bantuan Fisik", "makan_keterangan": "Perlu dibantu saat makan"},
            },
            {
                "id": "semester-3",
                "child_id": "child-3",
                "semester": "2025-2",
                "cognitive": {"angka": "Konsisten"},
            },
        ],
        "payments": [
            {
                "id": "payment-1",
                "child_id": "child-1",
                "amount": 1500000,
                "category": "Bulanan",
                "period": "November 2025",
                "status": "Tertunda",
                "due_date": local(2025, 11, 10),
            },
            {
                "id": "payment-2",
                "child_id": "child-1",
                "amount": 1500000,
                "category": "Bulanan",
                "period": "Oktober 2025",
                "status": "Dibayar",
                "due_date": local(2025, 10, 10),
            },
            {
                "id": "payment-3",
                "child_id": "child-2",
                "amount": 3000000,
                "category": "Semester",
                "period": "Semester 2 2025",
                "status": "Tertunda",
                "due_date": local(2025, 12, 10),
            },
            {
                "id": "payment-4",
                "child_id": "child-3",
                "amount": 500000,
                "category": "Registrasi",
                "period": "2025",
                "status": "Tertunda",
                "due_date": local(2025, 11, 1),
            },
        ],
        "curriculums": [
            {"id": "curriculum-1", "title": "Mengenal Warna"},
            {"id": "curriculum-2", "title": "Musik dan Gerak"},
        ],
        "schedules": [
            {
                "id": "schedule-1",
                "title": "Menggambar",
                "day": "Monday",
                "startTime": "10:00",
                "endTime": "11:00",
                "teacher": "teacher-1",
                "curriculum": "curriculum-1",
            },
            {
                "id": "schedule-2",
                "title": "Senam Pagi",
                "day": "Monday",
                "startTime": "08:00",
                "endTime": "09:00",
                "teacher": "teacher-2",
            },
            {
                "id": "schedule-3",
                "title": "Bernyanyi",
                "date": local(2025, 11, 18, 9),
                "startTime": "09:00",
                "endTime": "10:00",
                "curriculum": "curriculum-2",
            },
            {
                "id": "schedule-4",
                "title": "Bercerita",
                "day": "Friday",
                "startTime": "13:00",
            },
        ],
    }


@pytest.fixture
def store(seed_documents):
    return InMemoryDocumentStore(seed_documents)


@pytest.fixture
def gateway(store):
    return DataGateway(store)


@pytest.fixture
def registry():
    return build_registry()


@pytest.fixture
def parent():
    return Caller(id="parent-1", role="Parent", name="Ibu Dewi")


@pytest.fixture
def admin():
    return Caller(id="admin-1", role="Admin", name="Admin Sekolah")


@pytest.fixture
def parent_context(parent, gateway, now):
    return ToolContext(caller=parent, gateway=gateway, now=now)


@pytest.fixture
def admin_context(admin, gateway, now):
    return ToolContext(caller=admin, gateway=gateway, now=now)
