"""Tests for chat title generation."""

from __future__ import annotations

import pytest

from daycare_agent.title_generator import generate_thread_title, generate_title
from tests.helpers import ScriptedModel


@pytest.mark.asyncio
async def test_accepted_title():
    model = ScriptedModel(title='{"accepted": true, "title": "Tagihan Bulan November"}')
    result = await generate_title(model, "tagihan bulan ini berapa?", "Tagihan November Rp1.500.000")
    assert result == {"accepted": True, "title": "Tagihan Bulan November"}
    assert "tagihan bulan ini berapa?" in model.prompts[0]


@pytest.mark.asyncio
async def test_fenced_json_is_accepted():
    model = ScriptedModel(title='```json\n{"accepted": true, "title": "Jadwal Senin"}\n```')
    result = await generate_title(model, "jadwal senin", "Ada dua kelas")
    assert result["title"] == "Jadwal Senin"


@pytest.mark.asyncio
async def test_long_title_is_truncated():
    model = ScriptedModel(title='{"accepted": true, "title": "' + "x" * 80 + '"}')
    result = await generate_title(model, "pertanyaan panjang", "jawaban")
    assert len(result["title"]) == 40


@pytest.mark.asyncio
async def test_rejected_title_falls_back():
    model = ScriptedModel(title='{"accepted": false, "reason": "Not enough context"}')
    assert await generate_thread_title(model, "  halo  ", "Halo juga") == "halo"


@pytest.mark.asyncio
async def test_invalid_json_falls_back():
    model = ScriptedModel(title="Judul: Laporan Harian")
    message = "Bagaimana laporan harian Budi hari ini di sekolah?"
    assert await generate_thread_title(model, message, "Budi bermain") == message[:30]


@pytest.mark.asyncio
async def test_empty_message_is_not_sent_to_model():
    model = ScriptedModel()
    result = await generate_title(model, "   ", "")
    assert result["accepted"] is False
    assert model.prompts == []
