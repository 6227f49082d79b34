"""
Voice Session Tests

End-to-end tests of the session controller with recording speech fakes and
short real timers.

Run: pytest tests/test_voice_session.py -v
"""

import asyncio

import pytest

from config.constants import (
    MSG_HELP,
    MSG_MULTIPLE_MATCHES,
    MSG_NOTHING_TO_REPEAT,
    MSG_NOTHING_TO_UNDO,
    MSG_STALE_STOP,
    MSG_UNDO,
)
from core.models import PackageSize, Stop
from services.voice_load.session import Mode, VoiceSessionConfig

from tests.fakes import ScriptedSpeechOutput

# Long enough for every 0.05s timer in fast_config to fire
SETTLE = 0.2


async def _commit_and_settle(session, transcript):
    """Speak a transcript, confirm it and wait for the reset to listening."""
    session.handle_speech_result(transcript)
    assert session.confirm() is True
    await asyncio.sleep(SETTLE)
    assert session.mode == Mode.LISTENING


# ============================================================================
# Lifecycle Tests
# ============================================================================

class TestLifecycle:
    """Tests for start, pause, resume, finish and close."""

    @pytest.mark.asyncio
    async def test_start(self, make_session, speech_input, tones):
        session = make_session()

        assert await session.start() is True
        assert session.mode == Mode.LISTENING
        assert speech_input.running is True
        assert tones.tones == ["start"]
        assert session.alias_store.loaded is True

    @pytest.mark.asyncio
    async def test_start_twice(self, make_session):
        session = make_session()
        await session.start()

        assert await session.start() is False
        assert session.mode == Mode.LISTENING

    @pytest.mark.asyncio
    async def test_pause_and_resume(self, make_session, speech_input):
        session = make_session()
        await session.start()

        assert session.pause() is True
        assert session.mode == Mode.PAUSED
        assert speech_input.running is False
        assert session.active is False

        assert session.resume() is True
        assert session.mode == Mode.LISTENING
        assert speech_input.running is True

    @pytest.mark.asyncio
    async def test_start_resumes_when_paused(self, make_session, speech_input):
        session = make_session()
        await session.start()
        session.pause()

        assert await session.start() is True
        assert session.mode == Mode.LISTENING
        assert speech_input.running is True

    @pytest.mark.asyncio
    async def test_paused_ignores_transcripts(self, make_session):
        session = make_session()
        await session.start()
        session.pause()

        session.handle_speech_result("fleming road")

        assert session.mode == Mode.PAUSED
        assert session.analytics.count('transcript') == 0

    @pytest.mark.asyncio
    async def test_close(self, make_session, speech_input):
        session = make_session()
        await session.start()
        session.handle_speech_result("fleming road")

        session.close()

        assert session.mode == Mode.BOOTING
        assert session.timer_pending is False
        assert speech_input.running is False
        await asyncio.sleep(SETTLE)
        assert len(session.packages) == 0

    @pytest.mark.asyncio
    async def test_recognizer_error_after_close(self, make_session, speech_input):
        """An 'aborted' error after stop() leaves the session restartable."""
        session = make_session()
        await session.start()
        session.close()

        session.handle_speech_error("aborted")
        await asyncio.sleep(SETTLE)

        assert session.mode == Mode.BOOTING
        assert session.analytics.count('error') == 0

        assert await session.start() is True
        assert session.mode == Mode.LISTENING
        assert speech_input.running is True

    @pytest.mark.asyncio
    async def test_recognizer_error_before_start(self, make_session):
        session = make_session()

        session.handle_speech_error("network")

        assert session.mode == Mode.BOOTING
        assert session.timer_pending is False

    @pytest.mark.asyncio
    async def test_boundary_failures_do_not_escape(self, make_session):
        """A recognizer that throws does not break the session."""

        class BrokenInput:
            def start(self):
                raise RuntimeError("microphone unplugged")

            def stop(self):
                raise RuntimeError("microphone unplugged")

        session = make_session(speech_input=BrokenInput())

        assert await session.start() is True
        session.handle_speech_result("fleming road")
        assert session.mode == Mode.CONFIRMING


# ============================================================================
# Confirm / Commit Tests
# ============================================================================

class TestConfirmFlow:
    """Tests for the confirm countdown and package commit."""

    @pytest.mark.asyncio
    async def test_high_confidence_goes_to_confirming(self, make_session, speech_output):
        session = make_session()
        await session.start()

        session.handle_speech_result("large fleming road")

        assert session.mode == Mode.CONFIRMING
        assert session.state.match.stop_id == "s1"
        assert session.state.match.size == PackageSize.LARGE
        assert speech_output.spoken[-1] == "Stop 1. 333 Fleming Road"
        assert session.timer_pending is True

    @pytest.mark.asyncio
    async def test_countdown_commits_then_resets(self, make_session, speech_input, tones):
        session = make_session()
        await session.start()

        session.handle_speech_result("large fleming road")
        await asyncio.sleep(SETTLE)

        assert len(session.packages) == 1
        package = session.packages.last
        assert package.assigned_stop_id == "s1"
        assert package.assigned_stop_number == 1
        assert package.assigned_address == "333 Fleming Road, Sarver, PA, 16055"
        assert package.size == PackageSize.LARGE
        assert "success" in tones.tones
        assert session.mode == Mode.LISTENING
        assert speech_input.running is True

    @pytest.mark.asyncio
    async def test_manual_confirm(self, make_session):
        session = make_session()
        await session.start()
        session.handle_speech_result("priority 12 oak st")

        assert session.confirm() is True
        assert session.mode == Mode.SUCCESS
        assert session.confirm() is False

        package = session.packages.last
        assert package.assigned_stop_id == "s2"
        assert package.notes == "Priority"
        assert len(session.packages) == 1

    @pytest.mark.asyncio
    async def test_stop_number(self, make_session):
        session = make_session()
        await session.start()

        session.handle_speech_result("stop two small")
        session.confirm()

        package = session.packages.last
        assert package.assigned_stop_id == "s2"
        assert package.assigned_stop_number == 2
        assert package.size == PackageSize.SMALL

    @pytest.mark.asyncio
    async def test_cancel_phrase_aborts_commit(self, make_session):
        session = make_session()
        await session.start()
        session.handle_speech_result("fleming road")

        session.handle_speech_result("wait")

        assert session.mode == Mode.LISTENING
        assert session.timer_pending is False
        await asyncio.sleep(SETTLE)
        assert len(session.packages) == 0
        assert session.analytics.count('cancel') == 1

    @pytest.mark.asyncio
    async def test_new_transcript_replaces_pending_match(self, make_session):
        session = make_session()
        await session.start()
        session.handle_speech_result("fleming road")

        session.handle_speech_result("12 oak st")

        assert session.mode == Mode.CONFIRMING
        assert session.state.match.stop_id == "s2"
        await asyncio.sleep(SETTLE)
        assert [p.assigned_stop_id for p in session.packages.packages] == ["s2"]

    @pytest.mark.asyncio
    async def test_pause_cancels_countdown(self, make_session):
        session = make_session()
        await session.start()
        session.handle_speech_result("fleming road")

        session.pause()

        assert session.timer_pending is False
        await asyncio.sleep(SETTLE)
        assert len(session.packages) == 0
        assert session.mode == Mode.PAUSED


# ============================================================================
# Stale Reference Tests
# ============================================================================

class TestStaleStop:
    """Commits resolve the stop against the live route."""

    @pytest.mark.asyncio
    async def test_stop_removed_in_place(self, make_session, route, tones):
        session = make_session()
        await session.start()
        session.handle_speech_result("fleming road")

        route.pop(0)
        session.confirm()

        assert session.mode == Mode.ERROR
        assert len(session.packages) == 0
        assert session.last_error == MSG_STALE_STOP
        assert tones.tones[-1] == "error"
        assert session.analytics.count('error') == 1

    @pytest.mark.asyncio
    async def test_route_replaced(self, make_session, route):
        session = make_session()
        await session.start()
        session.handle_speech_result("fleming road")

        session.update_stops([route[1]])
        await asyncio.sleep(SETTLE)

        assert len(session.packages) == 0
        assert session.analytics.count('confirm') == 0
        assert session.mode == Mode.LISTENING

    @pytest.mark.asyncio
    async def test_update_stops_rebuilds_only_on_new_list(self, make_session, route):
        session = make_session()
        brain = session.brain

        assert session.update_stops(route) is False
        assert session.brain is brain

        assert session.update_stops(list(route)) is True
        assert session.brain is not brain


# ============================================================================
# Suggestion Tests
# ============================================================================

class TestSuggestions:
    """Tests for ambiguous matches and learning from the pick."""

    @pytest.fixture
    def fleming_route(self):
        return [
            Stop(id="f1", address_line1="333 Fleming Road", city="Sarver"),
            Stop(id="f2", address_line1="40 Fleming Hollow", city="Sarver"),
        ]

    @pytest.fixture
    def strict_config(self):
        """Nothing fuzzy clears a threshold of 1.0."""
        return VoiceSessionConfig(
            confirm_threshold=1.0,
            countdown_seconds=0.05,
            success_reset_seconds=0.05,
            error_reset_seconds=0.05,
        )

    @pytest.mark.asyncio
    async def test_low_confidence_suggests(self, make_session, fleming_route, strict_config, tones, speech_output):
        session = make_session(stops=fleming_route, config=strict_config)
        await session.start()

        session.handle_speech_result("fleming")

        assert session.mode == Mode.SUGGESTING
        assert [c.stop_id for c in session.state.candidates] == ["f1", "f2"]
        assert tones.tones[-1] == "alert"
        assert speech_output.spoken[-1] == MSG_MULTIPLE_MATCHES
        assert session.timer_pending is False

    @pytest.mark.asyncio
    async def test_pick_candidate_learns_alias(self, make_session, fleming_route, strict_config, alias_store):
        session = make_session(stops=fleming_route, config=strict_config)
        await session.start()
        session.handle_speech_result("fleming")

        session.handle_speech_result("number two")
        await session.drain()

        assert session.mode == Mode.CONFIRMING
        assert session.state.match.stop_id == "f2"
        assert alias_store.get("fleming") == "f2"
        assert session.analytics.count('learn') == 1

        session.confirm()
        assert session.packages.last.assigned_stop_number == 2

    @pytest.mark.asyncio
    async def test_learned_alias_confirms_next_time(self, make_session, fleming_route):
        session = make_session(stops=fleming_route)
        await session.start()
        await session.alias_store.set("fleming", "f2")

        session.handle_speech_result("fleming")

        assert session.mode == Mode.CONFIRMING
        assert session.state.match.stop_id == "f2"
        assert session.state.match.source == "alias"

    @pytest.mark.asyncio
    async def test_cancel_suggestions(self, make_session, fleming_route, strict_config):
        session = make_session(stops=fleming_route, config=strict_config)
        await session.start()
        session.handle_speech_result("fleming")

        session.handle_speech_result("cancel")

        assert session.mode == Mode.LISTENING
        assert session.analytics.count('cancel') == 1

    @pytest.mark.asyncio
    async def test_out_of_range_pick_is_ignored(self, make_session, fleming_route, strict_config):
        session = make_session(stops=fleming_route, config=strict_config)
        await session.start()
        session.handle_speech_result("fleming")

        assert session.select_candidate(5) is False
        assert session.mode == Mode.SUGGESTING

    @pytest.mark.asyncio
    async def test_tied_matches_are_not_auto_confirmed(self, make_session):
        """Two equally good stops go to suggestions even above the threshold."""
        oak_route = [
            Stop(id="x1", address_line1="12 Oak St", city="Sarver"),
            Stop(id="x2", address_line1="40 Oak St", city="Sarver"),
        ]
        session = make_session(stops=oak_route)
        await session.start()

        session.handle_speech_result("oak st")
        await asyncio.sleep(SETTLE)

        assert session.mode == Mode.SUGGESTING
        assert [c.stop_id for c in session.state.candidates] == ["x1", "x2"]
        assert len(session.packages) == 0

    @pytest.mark.asyncio
    async def test_margin_is_configurable(self, make_session, fleming_route):
        """With no margin a tie above the threshold confirms the first stop."""
        config = VoiceSessionConfig(candidate_margin=-1.0, countdown_seconds=10.0)
        session = make_session(stops=fleming_route, config=config)
        await session.start()

        session.handle_speech_result("fleming")

        assert session.mode == Mode.CONFIRMING
        assert session.state.match.stop_id == "f1"
        session.close()

    @pytest.mark.asyncio
    async def test_stop_number_while_suggesting(self, make_session, fleming_route):
        """'stop 2' answers the suggestion prompt instead of cancelling it."""
        session = make_session(stops=fleming_route)
        await session.start()
        session.handle_speech_result("fleming")
        assert session.mode == Mode.SUGGESTING

        session.handle_speech_result("stop 2")

        assert session.mode == Mode.CONFIRMING
        assert session.state.match.stop_id == "f2"
        assert session.analytics.count('cancel') == 0
        session.close()

    @pytest.mark.asyncio
    async def test_no_dismisses_suggestions(self, make_session, fleming_route):
        session = make_session(stops=fleming_route)
        await session.start()
        session.handle_speech_result("fleming")

        session.handle_speech_result("no")

        assert session.mode == Mode.LISTENING
        assert session.analytics.count('cancel') == 1

    @pytest.mark.asyncio
    async def test_manual_correction(self, make_session, alias_store):
        session = make_session()
        await session.start()
        session.handle_speech_result("fleming road")

        assert session.correct("s2") is True
        await session.drain()

        assert alias_store.get("fleming road") == "s2"


# ============================================================================
# Error Tests
# ============================================================================

class TestErrors:
    """Tests for no-match and recognizer errors."""

    @pytest.mark.asyncio
    async def test_no_match_then_reset(self, make_session, tones, speech_input):
        session = make_session()
        await session.start()

        session.handle_speech_result("zzzz qqqq")

        assert session.mode == Mode.ERROR
        assert tones.tones[-1] == "error"
        assert session.analytics.count('error') == 1

        await asyncio.sleep(SETTLE)
        assert session.mode == Mode.LISTENING
        assert speech_input.running is True

    @pytest.mark.asyncio
    async def test_no_speech_is_benign(self, make_session):
        session = make_session()
        await session.start()

        session.handle_speech_error("no-speech")

        assert session.mode == Mode.LISTENING
        assert session.analytics.count('error') == 0

    @pytest.mark.asyncio
    async def test_recognizer_error(self, make_session):
        session = make_session()
        await session.start()

        session.handle_speech_error("not-allowed")

        assert session.mode == Mode.ERROR
        assert "not-allowed" in session.last_error
        assert session.analytics.events[-1].details['code'] == "not-allowed"

    @pytest.mark.asyncio
    async def test_recognizer_error_cancels_countdown(self, make_session):
        session = make_session()
        await session.start()
        session.handle_speech_result("fleming road")

        session.handle_speech_error("network")
        await asyncio.sleep(SETTLE)

        assert len(session.packages) == 0


# ============================================================================
# Speech I/O Tests
# ============================================================================

class TestSpeechDiscipline:
    """Recognition is suspended while the session speaks."""

    @pytest.mark.asyncio
    async def test_interim_text_only_updates_display(self, make_session):
        session = make_session()
        await session.start()

        session.handle_speech_result("", "flem")

        assert session.interim_text == "flem"
        assert session.mode == Mode.LISTENING
        assert session.analytics.events == ()

        session.handle_speech_result("fleming road")
        assert session.interim_text == ""

    @pytest.mark.asyncio
    async def test_readback_suspends_recognition(self, make_session, speech_input):
        output = ScriptedSpeechOutput(auto_complete=False)
        session = make_session(speech_output=output)
        await session.start()

        session.handle_speech_result("fleming road")

        assert session.speaking is True
        assert speech_input.running is False

        # Echo of our own readback is dropped
        session.handle_speech_result("wait")
        assert session.mode == Mode.CONFIRMING

        output.complete_all()
        assert session.speaking is False
        assert speech_input.running is True

    @pytest.mark.asyncio
    async def test_late_completion_after_pause(self, make_session, speech_input):
        """A readback finishing after pause must not reopen the microphone."""
        output = ScriptedSpeechOutput(auto_complete=False)
        session = make_session(speech_output=output)
        await session.start()
        session.handle_speech_result("fleming road")

        session.pause()
        output.complete_all()

        assert speech_input.running is False
        assert session.mode == Mode.PAUSED

    @pytest.mark.asyncio
    async def test_completion_resumes_listening_after_undo(self, make_session, speech_input):
        output = ScriptedSpeechOutput(auto_complete=False)
        session = make_session(speech_output=output)
        await session.start()

        session.handle_speech_result("undo")

        assert session.mode == Mode.LISTENING
        assert speech_input.running is False
        output.complete_all()
        assert speech_input.running is True


# ============================================================================
# Command Tests
# ============================================================================

class TestCommands:
    """Tests for spoken control commands."""

    @pytest.mark.asyncio
    async def test_undo_last_package(self, make_session, speech_output):
        session = make_session()
        await session.start()
        await _commit_and_settle(session, "fleming road")

        session.handle_speech_result("undo")

        assert len(session.packages) == 0
        assert speech_output.spoken[-1] == MSG_UNDO
        assert session.mode == Mode.LISTENING
        assert session.analytics.count('undo') == 1

    @pytest.mark.asyncio
    async def test_undo_with_nothing_loaded(self, make_session, speech_output):
        session = make_session()
        await session.start()

        session.handle_speech_result("undo")

        assert speech_output.spoken[-1] == MSG_NOTHING_TO_UNDO
        assert session.analytics.count('undo') == 0

    @pytest.mark.asyncio
    async def test_help(self, make_session, speech_output):
        session = make_session()
        await session.start()

        session.handle_speech_result("help")

        assert speech_output.spoken[-1] == MSG_HELP
        assert session.mode == Mode.LISTENING

    @pytest.mark.asyncio
    async def test_repeat(self, make_session, speech_output):
        session = make_session()
        await session.start()

        session.handle_speech_result("repeat")
        assert speech_output.spoken[-1] == MSG_NOTHING_TO_REPEAT

        await _commit_and_settle(session, "12 oak st")
        session.handle_speech_result("repeat")
        assert speech_output.spoken[-1] == "Stop 2. 12 Oak St"

    @pytest.mark.asyncio
    async def test_summary_command(self, make_session, speech_output):
        session = make_session()
        await session.start()
        await _commit_and_settle(session, "fleming road")

        session.handle_speech_result("summary")

        assert speech_output.spoken[-1].startswith("You have loaded 1 packages.")

    @pytest.mark.asyncio
    async def test_finish(self, make_session, speech_input, speech_output):
        session = make_session()
        await session.start()
        await _commit_and_settle(session, "fleming road")
        session.handle_speech_result("zzzz qqqq")
        await asyncio.sleep(SETTLE)

        session.handle_speech_result("done")

        assert session.mode == Mode.SUMMARY
        summary = session.state.summary
        assert summary.loaded == 1
        assert summary.failed == 1
        assert summary.avg_confidence == pytest.approx(1.0)
        assert speech_input.running is False
        assert speech_output.spoken[-1] == summary.spoken()
        assert session.finish() is None
        assert session.pause() is False
