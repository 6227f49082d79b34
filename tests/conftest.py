"""
Test Configuration

Pytest configuration and shared fixtures for all tests.
"""

from typing import List

import pytest

from core.models import Stop
from services.packages import PackageStore
from services.storage import MemoryKeyValueStore
from services.voice_load.analytics import VoiceSessionAnalytics
from services.voice_load.learning import AliasStore
from services.voice_load.session import VoiceSession, VoiceSessionConfig

from tests.fakes import RecordingSpeechInput, RecordingTonePlayer, ScriptedSpeechOutput


# ============================================================================
# Route fixtures
# ============================================================================

@pytest.fixture
def route() -> List[Stop]:
    """Two-stop rural route."""
    return [
        Stop(id="s1", address_line1="333 Fleming Road", city="Sarver", state="PA", zip="16055"),
        Stop(id="s2", address_line1="12 Oak St", city="Sarver", state="PA", zip="16055"),
    ]


@pytest.fixture
def long_route() -> List[Stop]:
    """Five stops, the first sharing a street with the fifth."""
    return [
        Stop(id="a", address_line1="101 Main Street", city="Cabot"),
        Stop(id="b", address_line1="7 Pine Hollow Road", city="Cabot"),
        Stop(id="c", address_line1="45 Winfield Road", city="Cabot", notes="blue barn"),
        Stop(id="d", address_line1="88 Cypress Lane", city="Cabot"),
        Stop(id="e", address_line1="230 Main Street", city="Cabot"),
    ]


# ============================================================================
# Session fixtures
# ============================================================================

@pytest.fixture
def fast_config() -> VoiceSessionConfig:
    """Session timings short enough for real sleeps in tests."""
    return VoiceSessionConfig(
        confirm_threshold=0.85,
        countdown_seconds=0.05,
        success_reset_seconds=0.05,
        error_reset_seconds=0.05,
        fuzzy_cutoff=0.6,
    )


@pytest.fixture
def speech_input() -> RecordingSpeechInput:
    return RecordingSpeechInput()


@pytest.fixture
def speech_output() -> ScriptedSpeechOutput:
    return ScriptedSpeechOutput()


@pytest.fixture
def tones() -> RecordingTonePlayer:
    return RecordingTonePlayer()


@pytest.fixture
def alias_store() -> AliasStore:
    return AliasStore(MemoryKeyValueStore())


@pytest.fixture
def make_session(route, fast_config, speech_input, speech_output, tones, alias_store):
    """Factory building a VoiceSession wired to the recording fakes."""

    def _make(stops=None, config=None, **overrides) -> VoiceSession:
        kwargs = dict(
            package_store=PackageStore(),
            alias_store=alias_store,
            speech_input=speech_input,
            speech_output=speech_output,
            tones=tones,
            analytics=VoiceSessionAnalytics(),
            config=config or fast_config,
        )
        kwargs.update(overrides)
        return VoiceSession(route if stops is None else stops, **kwargs)

    return _make
