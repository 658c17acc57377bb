"""Capture pipeline state machine.

One controller drives one form capture: microphone -> transcription ->
field extraction -> review -> submission. All state lives in a
``CaptureSession`` owned by the controller, and the only way to change it is
``dispatch(event)``. Blocking collaborators (device open, HTTP calls) run in
worker threads through ``asyncio.to_thread`` so the event loop stays free.

Remote and device failures never escape ``dispatch``: they are logged,
recorded in ``session.last_error``, reported through ``notify`` and move the
pipeline to ``Phase.ERROR``, from which a new recording can always start.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional, Set

from .errors import (
    CaptureError,
    DeviceUnavailable,
    ExtractionFailed,
    PermissionDenied,
    PersistenceFailed,
    TranscriptionFailed,
    ValidationFailed,
)
from .extractor import build_field_schema, check_extraction_input
from .models import AudioBlob, FormTemplate
from .review import ReviewState

logger = logging.getLogger("voiceform")

LOADING_MESSAGES = [
    "Analyzing audio waves...",
    "Decoding your dictation...",
    "Engaging neural networks...",
    "Warming up the AI...",
    "Structuring the insights...",
    "Finding the keywords...",
    "Almost there...",
    "Just a moment more...",
    "Processing your thoughts...",
    "Consulting the digital oracle...",
]

NOT_REVIEWING = "Not in reviewing state or no parsed data available to save."
NO_AUDIO = "No audio data was captured during recording."
MISSING_PARSE_INPUT = "Cannot parse without transcription and form fields."


class Phase(str, Enum):
    PROMPTING = "prompting"
    RECORDING = "recording"
    PROCESSING = "processing"
    REVIEWING = "reviewing"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    ERROR = "error"


class ProcessingStage(str, Enum):
    IDLE = "idle"
    TRANSCRIBING = "transcribing"
    PARSING = "parsing"


@dataclass(frozen=True)
class Start:
    pass


@dataclass(frozen=True)
class Stop:
    pass


@dataclass(frozen=True)
class Edit:
    key: str
    value: Any


@dataclass(frozen=True)
class ToggleChoice:
    key: str
    option: str
    included: bool


@dataclass(frozen=True)
class RecordAgain:
    pass


@dataclass(frozen=True)
class Retry:
    pass


@dataclass(frozen=True)
class Save:
    pass


@dataclass(frozen=True)
class Regenerate:
    transcript: str


@dataclass(frozen=True)
class CaptureFault:
    error: CaptureError


@dataclass
class CaptureSession:
    review: ReviewState
    phase: Phase = Phase.PROMPTING
    generation: int = 0
    audio: Optional[AudioBlob] = None
    transcript: Optional[str] = None
    last_error: Optional[str] = None
    processing_stage: ProcessingStage = ProcessingStage.IDLE
    status_message: Optional[str] = None
    permission_warning: Optional[str] = None
    requesting_device: bool = False
    regenerating: bool = False
    regenerate_error: Optional[str] = None
    submission_id: Optional[str] = None
    redirect_to: Optional[str] = None

    @property
    def review_values(self) -> Dict[str, Any]:
        return self.review.as_dict()


def _log_notify(level: str, message: str) -> None:
    logger.info("[%s] %s", level, message)


class CaptureController:
    def __init__(
        self,
        template: FormTemplate,
        capture,
        transcriber,
        extractor,
        persistence,
        notify: Optional[Callable[[str, str], None]] = None,
        actor_provider: Optional[Callable[[], Any]] = None,
        public: bool = False,
        status_interval_s: float = 2.5,
        rating_policy: str = "minimum",
        rng: Optional[random.Random] = None,
    ) -> None:
        self.template = template
        self.capture = capture
        self.transcriber = transcriber
        self.extractor = extractor
        self.persistence = persistence
        self.notify = notify or _log_notify
        self.actor_provider = actor_provider
        self.public = public
        self.status_interval_s = status_interval_s
        self.rating_policy = rating_policy
        self._rng = rng or random.Random()
        self._schema = build_field_schema(template.fields)
        self._ticker: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending: Set[asyncio.Task] = set()
        self._closed = False
        self.session = CaptureSession(review=ReviewState(template.fields, rating_policy))
        self._handlers = {
            Start: self._on_start,
            Retry: self._on_record_again,
            RecordAgain: self._on_record_again,
            Stop: self._on_stop,
            Edit: self._on_edit,
            ToggleChoice: self._on_toggle,
            Regenerate: self._on_regenerate,
            Save: self._on_save,
            CaptureFault: self._on_fault,
        }
        capture.on_error = self._report_capture_error

    # -- public interface -------------------------------------------------

    def get_phase(self) -> Phase:
        return self.session.phase

    @property
    def phase(self) -> Phase:
        return self.session.phase

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def ticker_active(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    @property
    def fields_editable(self) -> bool:
        # A pending microphone request has already discarded the values.
        return self.session.phase is Phase.REVIEWING and not self.session.requesting_device

    @property
    def can_record(self) -> bool:
        return (
            self.session.phase in (Phase.PROMPTING, Phase.REVIEWING, Phase.ERROR)
            and not self.session.requesting_device
        )

    @property
    def can_stop(self) -> bool:
        return self.session.phase is Phase.RECORDING

    @property
    def can_save(self) -> bool:
        return self.fields_editable and not self.session.regenerating

    async def dispatch(self, event) -> Phase:
        if self._closed:
            raise RuntimeError("Capture controller is closed.")
        handler = self._handlers.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported event: {event!r}")
        self._loop = asyncio.get_running_loop()
        await handler(event)
        return self.session.phase

    def close(self) -> None:
        """Tear down: stop the ticker and release the microphone."""
        if self._closed:
            return
        self._closed = True
        self._stop_ticker()
        for task in list(self._pending):
            task.cancel()
        self.capture.release()
        logger.info("Capture controller closed in phase %s", self.session.phase.value)

    async def aclose(self) -> None:
        self.close()

    async def __aenter__(self) -> "CaptureController":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # -- phase bookkeeping ------------------------------------------------

    def _set_phase(self, phase: Phase) -> None:
        previous = self.session.phase
        if previous is Phase.PROCESSING and phase is not Phase.PROCESSING:
            self._stop_ticker()
        self.session.phase = phase
        if phase is Phase.PROCESSING and previous is not Phase.PROCESSING:
            self._start_ticker()
        if phase is not Phase.PROCESSING:
            self.session.processing_stage = ProcessingStage.IDLE
        if previous is not phase:
            logger.info("Capture phase %s -> %s", previous.value, phase.value)

    def _stale(self, generation: int) -> bool:
        return self._closed or generation != self.session.generation

    def _new_session(self) -> CaptureSession:
        self._stop_ticker()
        previous = self.session
        self.session = CaptureSession(
            review=ReviewState(self.template.fields, self.rating_policy),
            phase=previous.phase,
            generation=previous.generation + 1,
        )
        return self.session

    def _fail(self, reason: str, message: Optional[str] = None) -> None:
        self.session.last_error = reason
        self._set_phase(Phase.ERROR)
        self.notify("error", message or reason)

    # -- processing status ticker -----------------------------------------

    def _pick_message(self) -> str:
        current = self.session.status_message
        choices = [m for m in LOADING_MESSAGES if m != current] or LOADING_MESSAGES
        return self._rng.choice(choices)

    def _start_ticker(self) -> None:
        self._stop_ticker()
        self.session.status_message = self._pick_message()
        self._ticker = asyncio.get_running_loop().create_task(self._rotate_messages())

    def _stop_ticker(self) -> None:
        ticker, self._ticker = self._ticker, None
        if ticker is not None:
            ticker.cancel()

    async def _rotate_messages(self) -> None:
        while True:
            await asyncio.sleep(self.status_interval_s)
            self.session.status_message = self._pick_message()

    # -- recording --------------------------------------------------------

    async def _on_start(self, _event: Start) -> None:
        if self.session.phase not in (Phase.PROMPTING, Phase.ERROR):
            logger.debug("Start ignored in phase %s", self.session.phase.value)
            return
        await self._begin_recording()

    async def _on_record_again(self, event) -> None:
        allowed = (Phase.ERROR,) if isinstance(event, Retry) else (Phase.REVIEWING, Phase.ERROR)
        if self.session.phase not in allowed:
            logger.debug("%s ignored in phase %s", type(event).__name__, self.session.phase.value)
            return
        await self._begin_recording()

    async def _begin_recording(self) -> None:
        if self.session.requesting_device:
            return
        session = self._new_session()
        generation = session.generation
        session.requesting_device = True
        try:
            await asyncio.to_thread(self.capture.begin)
        except CaptureError as exc:
            error = exc
        except Exception as exc:
            logger.exception("Unexpected failure opening the microphone")
            error = DeviceUnavailable(f"Could not start recording: {exc}")
        else:
            error = None
        finally:
            session.requesting_device = False

        if self._stale(generation):
            self.capture.release()
            return
        if error is not None:
            self.capture.release()
            logger.warning("Microphone unavailable: %s", error.reason)
            if isinstance(error, (PermissionDenied, DeviceUnavailable)):
                session.permission_warning = error.reason
                self._set_phase(Phase.PROMPTING)
                self.notify("warning", error.reason)
            else:
                self._fail(error.reason)
            return

        self._set_phase(Phase.RECORDING)
        self.notify("success", "Microphone access granted. Recording started.")

    async def _on_fault(self, event: CaptureFault) -> None:
        if self.session.phase is not Phase.RECORDING:
            return
        self.capture.release()
        self._fail(event.error.reason, "An error occurred during recording.")

    def _report_capture_error(self, error: CaptureError) -> None:
        # Called from the audio thread.
        loop = self._loop
        if loop is None or self._closed or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._schedule_fault, error)

    def _schedule_fault(self, error: CaptureError) -> None:
        if self._closed:
            return
        task = asyncio.get_running_loop().create_task(self._dispatch_fault(error))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _dispatch_fault(self, error: CaptureError) -> None:
        if not self._closed:
            await self.dispatch(CaptureFault(error))

    async def _on_stop(self, _event: Stop) -> None:
        if self.session.phase is not Phase.RECORDING:
            logger.debug("Stop ignored in phase %s", self.session.phase.value)
            return
        session = self.session
        generation = session.generation
        self._set_phase(Phase.PROCESSING)
        try:
            blob = await asyncio.to_thread(self.capture.end)
        except Exception as exc:
            logger.exception("Failed to finalize the recording")
            self.capture.release()
            if not self._stale(generation):
                self._fail(f"Recording failed: {exc}")
            return
        if self._stale(generation):
            return
        if blob.size == 0:
            self._fail(NO_AUDIO, "Recording failed: No audio data captured.")
            return
        session.audio = blob
        self.notify("info", "Recording stopped. Processing...")
        await self._process(generation)

    # -- remote calls -----------------------------------------------------

    async def _process(self, generation: int) -> None:
        session = self.session
        session.processing_stage = ProcessingStage.TRANSCRIBING
        blob = session.audio
        reason = None
        transcript = None
        try:
            transcript = await asyncio.to_thread(self.transcriber.transcribe, blob)
        except TranscriptionFailed as exc:
            reason = exc.reason
        except Exception:
            logger.exception("Transcription raised unexpectedly")
            reason = "Failed to get transcription."
        finally:
            session.audio = None

        if self._stale(generation):
            return
        if reason is not None:
            logger.warning("Transcription failed: %s", reason)
            self._fail(reason, f"Processing failed: {reason}")
            return
        session.transcript = transcript

        try:
            mapping = await self._extract(transcript)
        except ValidationFailed as exc:
            if not self._stale(generation):
                self._fail(exc.reason, MISSING_PARSE_INPUT)
            return
        except ExtractionFailed as exc:
            if not self._stale(generation):
                logger.warning("Extraction failed: %s", exc.reason)
                self._fail(exc.reason, f"Processing failed: {exc.reason}")
            return
        if self._stale(generation):
            return

        session.review.populate(mapping)
        self._set_phase(Phase.REVIEWING)
        self.notify("success", "Processing complete! Review and save.")

    async def _extract(self, transcript: Optional[str]) -> Dict[str, Any]:
        check_extraction_input(transcript, self.template.fields)
        self.session.processing_stage = ProcessingStage.PARSING
        try:
            return await asyncio.to_thread(self.extractor.extract, transcript, self._schema)
        except ExtractionFailed:
            raise
        except Exception as exc:
            logger.exception("Extraction raised unexpectedly")
            raise ExtractionFailed("Failed to parse transcription.") from exc

    # -- review -----------------------------------------------------------

    async def _on_edit(self, event: Edit) -> None:
        if not self.fields_editable:
            self.notify("warning", "Fields can only be edited while reviewing.")
            return
        try:
            self.session.review.set(event.key, event.value)
        except ValueError as exc:
            self.notify("error", str(exc))

    async def _on_toggle(self, event: ToggleChoice) -> None:
        if not self.fields_editable:
            self.notify("warning", "Fields can only be edited while reviewing.")
            return
        try:
            self.session.review.toggle_multi_choice(event.key, event.option, event.included)
        except ValueError as exc:
            self.notify("error", str(exc))

    async def _on_regenerate(self, event: Regenerate) -> None:
        session = self.session
        text = (event.transcript or "").strip()
        if not self.fields_editable or session.regenerating or not text:
            return
        generation = session.generation
        session.regenerating = True
        session.regenerate_error = None
        try:
            mapping = await self._extract(text)
        except (ValidationFailed, ExtractionFailed) as exc:
            if not self._stale(generation):
                session.regenerate_error = exc.reason
                self.notify("error", exc.reason)
            return
        finally:
            session.regenerating = False
            session.processing_stage = ProcessingStage.IDLE

        if self._stale(generation) or session.phase is not Phase.REVIEWING:
            return
        session.review.populate(mapping)
        session.transcript = text
        self.notify("success", "Parsing complete! Review updated fields.")

    # -- submission -------------------------------------------------------

    async def _resolve_actor(self) -> Optional[str]:
        if self.public or self.actor_provider is None:
            return None
        try:
            actor = self.actor_provider()
            if inspect.isawaitable(actor):
                actor = await actor
        except Exception:
            logger.exception("Could not read the user session")
            actor = None
        if not actor:
            logger.warning("User session not found for authenticated save.")
            return None
        return str(actor)

    async def _on_save(self, _event: Save) -> None:
        session = self.session
        if not self.can_save or session.review.is_empty():
            self.notify("error", NOT_REVIEWING)
            return
        generation = session.generation
        self._set_phase(Phase.SUBMITTING)
        actor_id = await self._resolve_actor()
        form_data = session.review.as_dict()
        reason = None
        try:
            submission_id = await asyncio.to_thread(
                self.persistence.save, self.template.id, form_data, actor_id
            )
        except PersistenceFailed as exc:
            reason = exc.reason
        except Exception:
            logger.exception("Saving the submission raised unexpectedly")
            reason = "Could not save submission."

        if self._stale(generation):
            return
        if reason is not None:
            self._fail(reason)
            return

        session.submission_id = submission_id
        if self.public:
            session.redirect_to = "/form/submitted"
            message = "Form submitted successfully! Redirecting..."
        else:
            session.redirect_to = f"/submissions/{submission_id}"
            message = "Submission saved successfully! Redirecting..."
        self._set_phase(Phase.SUBMITTED)
        self.notify("success", message)
