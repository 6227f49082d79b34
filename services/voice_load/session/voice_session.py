"""
Voice Session

Drives a hands-free loading session: listens for transcripts, asks the
RouteBrain for a stop, confirms with a cancellable spoken countdown and
appends the package.

Timer discipline:
- A session owns exactly one timer handle (countdown, success reset or
  error reset).
- Every state change cancels it before anything else happens, and a firing
  timer re-checks that its state is still current.

Speech discipline:
- Recognition is stopped before the session speaks and restarted only from
  the synthesizer's completion callback, and only if that speech is still the
  latest and the session is active.

Usage:
    session = VoiceSession(route, PackageStore(), alias_store=AliasStore(backend),
                           speech_input=mic, speech_output=tts, tones=beeper)
    await session.start()
    # recognizer callbacks:
    session.handle_speech_result(final_text, interim_text)
    session.handle_speech_error("not-allowed")
"""

import asyncio
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

from config.constants import (
    BENIGN_SPEECH_ERRORS,
    MSG_HELP,
    MSG_MULTIPLE_MATCHES,
    MSG_NO_MATCH,
    MSG_NOTHING_TO_REPEAT,
    MSG_NOTHING_TO_UNDO,
    MSG_STALE_STOP,
    MSG_UNDO,
    TONE_ALERT,
    TONE_ERROR,
    TONE_START,
    TONE_SUCCESS,
)
from config.settings import Settings, settings as default_settings
from core.models import Package, Stop
from services.packages import PackageStore
from services.voice_load.analytics import SessionSummary, VoiceSessionAnalytics
from services.voice_load.learning import AliasStore
from services.voice_load.route_brain import Prediction, RouteBrain
from services.voice_load.session.boundaries import (
    NullSpeechInput,
    NullSpeechOutput,
    NullTonePlayer,
    SpeechInput,
    SpeechOutput,
    TonePlayer,
)
from services.voice_load.session.commands import CommandDetector, VoiceCommand, get_command_detector
from services.voice_load.session.machine import (
    Boot,
    Booting,
    Cancel,
    Candidates,
    Confirm,
    Confirming,
    Error,
    Fail,
    Finish,
    Listening,
    Match,
    MatchResult,
    Mode,
    Pause,
    Paused,
    Reset,
    Resume,
    Success,
    Suggesting,
    Summary,
    Transcript,
    Undo,
    VoiceLoadEvent,
    VoiceLoadState,
    is_terminal,
    transition,
)
from utils.exceptions import SpeechInputError, StaleStopReferenceError
from utils.logging import get_logger, log_voice_event

logger = get_logger(__name__)


@dataclass
class VoiceSessionConfig:
    """Product tuning constants for a session."""
    confirm_threshold: float = 0.85
    candidate_margin: float = 0.10
    countdown_seconds: float = 3.0
    success_reset_seconds: float = 1.2
    error_reset_seconds: float = 1.5
    fuzzy_cutoff: Optional[float] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "VoiceSessionConfig":
        s = settings or default_settings
        return cls(
            confirm_threshold=s.VOICE_CONFIRM_THRESHOLD,
            candidate_margin=s.VOICE_CANDIDATE_MARGIN,
            countdown_seconds=s.VOICE_COUNTDOWN_SECONDS,
            success_reset_seconds=s.VOICE_SUCCESS_RESET_SECONDS,
            error_reset_seconds=s.VOICE_ERROR_RESET_SECONDS,
            fuzzy_cutoff=s.FUZZY_MATCH_CUTOFF,
        )


_INPUT_MODES = {Mode.LISTENING, Mode.CONFIRMING, Mode.SUGGESTING}


class VoiceSession:
    """
    State machine controller for one voice loading session.

    Single-threaded: every public method must be called from the event loop
    that ran ``start()``.
    """

    def __init__(
        self,
        stops: Sequence[Stop],
        package_store: PackageStore,
        alias_store: Optional[AliasStore] = None,
        speech_input: Optional[SpeechInput] = None,
        speech_output: Optional[SpeechOutput] = None,
        tones: Optional[TonePlayer] = None,
        analytics: Optional[VoiceSessionAnalytics] = None,
        config: Optional[VoiceSessionConfig] = None,
        commands: Optional[CommandDetector] = None
    ):
        self.config = config or VoiceSessionConfig.from_settings()
        self.packages = package_store
        self.alias_store = alias_store if alias_store is not None else AliasStore()
        self.speech_input = speech_input or NullSpeechInput()
        self.speech_output = speech_output or NullSpeechOutput()
        self.tones = tones or NullTonePlayer()
        self.analytics = analytics or VoiceSessionAnalytics()
        self.commands = commands or get_command_detector()

        self._stops: Sequence[Stop] = stops
        self.brain = self._build_brain(stops)

        self._state: VoiceLoadState = Booting()
        self._episode = 0                      # bumps on every state change
        self._timer: Optional[asyncio.TimerHandle] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._active = False                   # False while paused/closed: no auto restart
        self._utterance = 0                    # id of the latest synthesized utterance
        self._speaking = False
        self._tasks: Set[asyncio.Task] = set()

        self.interim_text = ""
        self.last_transcript: Optional[str] = None
        self.last_prediction: Optional[Prediction] = None
        self.last_match: Optional[MatchResult] = None
        self.last_package: Optional[Package] = None
        self.last_error: Optional[str] = None

    # =========================================================================
    # Introspection
    # =========================================================================

    @property
    def state(self) -> VoiceLoadState:
        return self._state

    @property
    def mode(self) -> Mode:
        return self._state.mode

    @property
    def active(self) -> bool:
        return self._active

    @property
    def speaking(self) -> bool:
        return self._speaking

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None

    @property
    def stops(self) -> Sequence[Stop]:
        return self._stops

    @property
    def pending_tasks(self) -> Set[asyncio.Task]:
        return set(self._tasks)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> bool:
        """
        BOOT: load learned aliases and begin listening.

        From paused this resumes. Returns False if the session could not
        start (already running or finished).
        """
        self._loop = asyncio.get_running_loop()
        if not self.alias_store.loaded:
            await self.alias_store.load()

        if self.mode == Mode.PAUSED:
            return self.resume()

        self._active = True
        started = self._dispatch(Boot())
        if started:
            self._play_tone(TONE_START)
            logger.info(f"Voice session started with {len(self._stops)} stops")
        return started

    def pause(self) -> bool:
        """Stop listening and cancel any countdown. Valid from any non-terminal state."""
        if is_terminal(self._state):
            return False
        self._active = False
        return self._dispatch(Pause())

    def resume(self) -> bool:
        if self.mode != Mode.PAUSED:
            return False
        self._active = True
        return self._dispatch(Resume())

    def finish(self) -> Optional[SessionSummary]:
        """End the session and report a summary (terminal)."""
        if is_terminal(self._state):
            return None
        self.analytics.end()
        summary = self.analytics.get_summary()
        self._active = False
        self._dispatch(Finish(summary=summary))
        self._say(summary.spoken())
        logger.info(f"Voice session finished: {summary.to_dict()}")
        return summary

    def close(self) -> None:
        """Tear down: cancel timers, stop recognition and reset to booting."""
        self._cancel_timer()
        self._active = False
        self._stop_input()
        self._state = Booting()
        self._episode += 1
        self.interim_text = ""

    def update_stops(self, stops: Sequence[Stop]) -> bool:
        """
        Point the session at a new stop list.

        The brain is rebuilt only when the list object changes; commits always
        resolve against the latest list.
        """
        if stops is self._stops:
            return False
        self._stops = stops
        self.brain = self._build_brain(stops)
        logger.debug(f"Route changed, rebuilt brain over {len(stops)} stops")
        return True

    def _build_brain(self, stops: Sequence[Stop]) -> RouteBrain:
        return RouteBrain(stops, self.alias_store, fuzzy_cutoff=self.config.fuzzy_cutoff)

    # =========================================================================
    # Speech recognizer callbacks
    # =========================================================================

    def handle_speech_result(self, final_text: Optional[str], interim_text: str = "") -> None:
        """
        Recognizer result callback.

        Interim text only updates ``interim_text``. Final text enters the
        prediction pipeline.
        """
        final = (final_text or "").strip()
        if not final:
            if interim_text:
                self.interim_text = interim_text
            return

        self.interim_text = ""
        if self._speaking:
            logger.debug(f"Dropping transcript heard during synthesis: '{final}'")
            return

        try:
            self._handle_final(final)
        except Exception as e:
            logger.exception(f"Failed to handle transcript '{final}'")
            self._fail(f"Processing failed: {e}")

    def handle_speech_error(self, code: str) -> None:
        """Recognizer error callback. ``no-speech`` is expected and ignored."""
        if code in BENIGN_SPEECH_ERRORS:
            logger.debug(f"Ignoring benign speech error '{code}'")
            return

        error = SpeechInputError(f"Speech recognition error: {code}", code=code)
        logger.warning(f"Speech error: {error.to_dict()}")
        if not self._active or self.mode in (Mode.PAUSED, Mode.SUMMARY):
            return
        self._fail(error.message, {'code': code})

    def _handle_final(self, text: str) -> None:
        state = self._state

        if isinstance(state, Confirming) and self.commands.is_cancel(text):
            self.cancel()
            return

        if isinstance(state, Suggesting):
            choice = self.commands.candidate_choice(text)
            if choice is not None and choice < len(state.candidates):
                self.select_candidate(choice)
                return
            if self.commands.dismisses_suggestions(text):
                self.cancel()
                return

        if not self._dispatch(Transcript(transcript=text)):
            logger.debug(f"Ignoring transcript in {self.mode.value}: '{text}'")
            return
        self._process(text)

    # =========================================================================
    # User actions
    # =========================================================================

    def confirm(self) -> bool:
        """Manual confirm; same as the countdown finishing."""
        if self.mode != Mode.CONFIRMING:
            return False
        return self._dispatch(Confirm())

    def cancel(self) -> bool:
        """Abort a pending confirmation or suggestion and return to listening."""
        if self.mode not in (Mode.CONFIRMING, Mode.SUGGESTING):
            return False
        match = self._state.match if isinstance(self._state, Confirming) else None
        self.analytics.log('cancel', {'stop_id': match.stop_id if match else None})
        log_voice_event('cancel', False, self.last_transcript)
        return self._dispatch(Cancel())

    def select_candidate(self, index: int) -> bool:
        """
        Pick a suggested candidate.

        The choice is a correction, so the transcript is learned as an alias
        for that stop.
        """
        state = self._state
        if not isinstance(state, Suggesting) or not 0 <= index < len(state.candidates):
            return False
        chosen = state.candidates[index]
        self._teach(state.transcript, chosen.stop_id)
        return self._dispatch(Match(match=chosen))

    def correct(self, stop_id: str) -> bool:
        """Teach the last transcript to ``stop_id`` (manual correction)."""
        if not self.last_transcript:
            return False
        return self._teach(self.last_transcript, stop_id)

    # =========================================================================
    # Processing
    # =========================================================================

    def _process(self, transcript: str) -> None:
        self.last_transcript = transcript
        self.analytics.log('transcript', {'transcript': transcript})

        command = self.commands.detect(transcript)
        if command != VoiceCommand.NONE:
            self._run_command(command)
            return

        prediction = self.brain.predict(transcript)
        self.last_prediction = prediction

        if not prediction.matched:
            log_voice_event('match', False, transcript)
            self._fail(MSG_NO_MATCH, {'transcript': transcript})
            return

        self.analytics.log('match', {
            'stop_id': prediction.stop.id,
            'confidence': prediction.confidence,
            'source': prediction.source.value,
        })
        log_voice_event('match', True, transcript, {
            'stop': prediction.stop.id,
            'confidence': round(prediction.confidence, 2),
            'source': prediction.source.value,
        })

        if prediction.confidence > self.config.confirm_threshold and self._clear_lead(prediction):
            self._dispatch(Match(match=self._match_result(prediction.stop, prediction, prediction.confidence)))
            return

        candidates = tuple(
            self._match_result(stop, prediction, confidence)
            for stop, confidence in zip(prediction.candidates, prediction.candidate_confidences)
        ) or (self._match_result(prediction.stop, prediction, prediction.confidence),)
        self._dispatch(Candidates(candidates=candidates, transcript=transcript))

    def _clear_lead(self, prediction: Prediction) -> bool:
        """True unless the runner-up is within ``candidate_margin`` of the best."""
        confidences = prediction.candidate_confidences
        if len(confidences) < 2:
            return True
        return confidences[0] - confidences[1] > self.config.candidate_margin

    def _run_command(self, command: VoiceCommand) -> None:
        if command == VoiceCommand.UNDO:
            self._undo()
        elif command == VoiceCommand.FINISH:
            self.finish()
        elif command == VoiceCommand.HELP:
            self._say(MSG_HELP)
            self._dispatch(Reset())
        elif command == VoiceCommand.SUMMARY:
            self._say(self.analytics.get_summary().spoken())
            self._dispatch(Reset())
        elif command == VoiceCommand.REPEAT:
            self._say(self._readback(self.last_match) if self.last_match else MSG_NOTHING_TO_REPEAT)
            self._dispatch(Reset())

    def _undo(self) -> None:
        removed = self.packages.remove_last()
        if removed is not None:
            self.analytics.log('undo', {'package_id': removed.id, 'stop_id': removed.assigned_stop_id})
            log_voice_event('undo', True, details={'package': removed.id})
            self._play_tone(TONE_ERROR)
            self._say(MSG_UNDO)
        else:
            self._say(MSG_NOTHING_TO_UNDO)
        self._dispatch(Undo())

    def _match_result(self, stop: Stop, prediction: Prediction, confidence: float) -> MatchResult:
        notes = [stop.notes] if stop.notes else []
        return MatchResult(
            stop_id=stop.id,
            address=stop.address_line1,
            confidence=confidence,
            transcript=prediction.original_transcript,
            stop_number=self.brain.stop_number_for(stop.id),
            source=prediction.source.value,
            extracted=prediction.extracted,
            combined_notes=tuple(notes + list(prediction.extracted.notes)),
        )

    def _fail(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.last_error = message
        self.analytics.log('error', {'error': message, **(details or {})})
        self._dispatch(Fail(error=message))

    # =========================================================================
    # Commit
    # =========================================================================

    def _resolve_live_stop(self, stop_id: str) -> Stop:
        for stop in self._stops:
            if stop.id == stop_id:
                return stop
        raise StaleStopReferenceError(stop_id=stop_id)

    def _commit(self, match: MatchResult) -> None:
        try:
            stop = self._resolve_live_stop(match.stop_id)
        except StaleStopReferenceError as e:
            logger.warning(f"Commit aborted: {e.to_dict()}")
            self._fail(MSG_STALE_STOP, {'stop_id': match.stop_id})
            return

        stop_number = list(self._stops).index(stop) + 1
        package = Package(
            size=match.extracted.size,
            notes=", ".join(match.extracted.notes) or None,
            assigned_stop_id=stop.id,
            assigned_stop_number=stop_number,
            assigned_address=stop.full_address or stop.address_line1,
        )
        self.packages.add(package)
        self.last_package = package
        self.last_match = replace(match, stop_number=stop_number)

        self.analytics.log('confirm', {
            'package_id': package.id,
            'stop_id': stop.id,
            'confidence': match.confidence,
        })
        log_voice_event('confirm', True, match.transcript, {'stop': stop.id, 'size': package.size.value})
        self._play_tone(TONE_SUCCESS)
        self._schedule(self.config.success_reset_seconds, lambda: self._dispatch(Reset()))

    # =========================================================================
    # State transitions
    # =========================================================================

    def _dispatch(self, event: VoiceLoadEvent) -> bool:
        new_state = transition(self._state, event)
        if new_state is self._state:
            return False

        # Always first: a stale timer must never act on the new state
        self._cancel_timer()

        previous = self._state
        self._state = new_state
        self._episode += 1
        logger.debug(f"{previous.mode.value} → {new_state.mode.value} ({type(event).__name__})")
        self._on_enter(new_state)
        return True

    def _on_enter(self, state: VoiceLoadState) -> None:
        if isinstance(state, Listening):
            self._resume_input()
        elif isinstance(state, Confirming):
            self._say(self._readback(state.match))
            self._schedule(self.config.countdown_seconds, self.confirm)
        elif isinstance(state, Suggesting):
            self._play_tone(TONE_ALERT)
            self._say(MSG_MULTIPLE_MATCHES)
        elif isinstance(state, Success):
            self._commit(state.match)
        elif isinstance(state, Error):
            self._play_tone(TONE_ERROR)
            self._schedule(self.config.error_reset_seconds, lambda: self._dispatch(Reset()))
        elif isinstance(state, (Paused, Summary)):
            self._stop_input()

    def _readback(self, match: MatchResult) -> str:
        number = self.brain.stop_number_for(match.stop_id) or match.stop_number
        return f"Stop {number}. {match.address}" if number else match.address

    # =========================================================================
    # Timer
    # =========================================================================

    def _schedule(self, delay: float, callback: Callable[[], Any]) -> None:
        self._cancel_timer()
        loop = self._loop or asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._fire_timer, self._episode, callback)

    def _fire_timer(self, episode: int, callback: Callable[[], Any]) -> None:
        self._timer = None
        if episode != self._episode:
            logger.debug("Discarding timer from a previous state")
            return
        try:
            callback()
        except Exception:
            logger.exception("Timer callback failed")

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    # =========================================================================
    # Speech I/O
    # =========================================================================

    def _say(self, text: str) -> None:
        """Speak with recognition suspended; resume from the completion callback."""
        self._utterance += 1
        utterance = self._utterance
        self._speaking = True
        self._stop_input()

        done = False

        def on_complete() -> None:
            nonlocal done
            if done:
                return
            done = True
            self._speech_finished(utterance)

        try:
            self.speech_output.speak(text, on_complete)
        except Exception as e:
            logger.error(f"Speech synthesis failed: {e}")
            on_complete()

    def _speech_finished(self, utterance: int) -> None:
        if utterance != self._utterance:
            return
        self._speaking = False
        self._resume_input()

    def _resume_input(self) -> None:
        if self._active and not self._speaking and self.mode in _INPUT_MODES:
            try:
                self.speech_input.start()
            except Exception as e:
                logger.error(f"Failed to start speech input: {e}")

    def _stop_input(self) -> None:
        try:
            self.speech_input.stop()
        except Exception as e:
            logger.error(f"Failed to stop speech input: {e}")

    def _play_tone(self, kind: str) -> None:
        try:
            self.tones.play_tone(kind)
        except Exception as e:
            logger.debug(f"Tone '{kind}' unavailable: {e}")

    # =========================================================================
    # Learning
    # =========================================================================

    def _teach(self, transcript: str, stop_id: str) -> bool:
        if not transcript:
            return False
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(self._learn(transcript, stop_id))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return True

    async def _learn(self, transcript: str, stop_id: str) -> None:
        try:
            learned = await self.brain.learn(transcript, stop_id)
        except Exception as e:
            logger.error(f"Failed to learn alias for '{transcript}': {e}")
            return
        self.analytics.log('learn', {'transcript': transcript, 'stop_id': stop_id, 'persisted': learned})

    async def drain(self) -> None:
        """Wait for background alias writes (used at shutdown and in tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
