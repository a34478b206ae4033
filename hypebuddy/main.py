from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any, AsyncIterator, Callable, Literal
from uuid import uuid4

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from hypebuddy.config import AppSettings, load_settings
from hypebuddy.llm.client import GenerationClient
from hypebuddy.llm.types import GenerationError
from hypebuddy.memory.provider import MemoryProvider
from hypebuddy.memory.store import OutcomeAlreadyLogged, SessionNotFound, SessionStore
from hypebuddy.notifications.reminders import ReminderScheduler
from hypebuddy.orchestrator.clock import CLOCK, Clock
from hypebuddy.orchestrator.hype import HypeService, PersonaLocked, QuotaExceeded
from hypebuddy.orchestrator.policies import EntitlementProvider, QuotaPolicy, StaticEntitlements
from hypebuddy.orchestrator.state_machine import ConversationOrchestrator, TextGenerator, VoiceOutput
from hypebuddy.persona import PERSONAS, get_persona
from hypebuddy.scenarios import Scenario
from hypebuddy.telemetry.logging import configure_logging, get_logger
from hypebuddy.telemetry.tracing import configure_tracing
from hypebuddy.transcription.base import PushRecognizer
from hypebuddy.tts.edge import EdgeTTSClient
from hypebuddy.tts.native import Pyttsx3Synthesizer
from hypebuddy.tts.pipeline import VoiceDeliveryPipeline
from hypebuddy.ui.websocket import StateBridge

logger = get_logger(__name__)


class ChatNotFound(LookupError):
    def __init__(self, chat_id: str) -> None:
        super().__init__(f"chat '{chat_id}' not found")
        self.chat_id = chat_id


class Runtime:
    """Owns the long-lived collaborators and the live conversations."""

    def __init__(
        self,
        store: SessionStore,
        memory: MemoryProvider,
        generator: TextGenerator,
        voice: VoiceOutput,
        hype: HypeService,
        entitlements: EntitlementProvider,
        bridge: StateBridge,
        reminders: ReminderScheduler | None = None,
        clock: Clock = CLOCK,
        memory_limit: int = 5,
        closers: list[Callable[[], Any]] | None = None,
    ) -> None:
        self.store = store
        self.memory = memory
        self.generator = generator
        self.voice = voice
        self.hype = hype
        self.entitlements = entitlements
        self.bridge = bridge
        self.reminders = reminders
        self._clock = clock
        self._memory_limit = memory_limit
        self._closers = closers or []
        self._chats: dict[str, ConversationOrchestrator] = {}

    async def start(self) -> None:
        await self.store.init()
        logger.info("runtime.started")

    async def shutdown(self) -> None:
        for chat_id in list(self._chats):
            await self.close_chat(chat_id)
        await self.voice.stop()
        for closer in self._closers:
            await closer()
        if self.reminders is not None:
            self.reminders.shutdown()
        await self.store.aclose()
        logger.info("runtime.stopped")

    async def open_chat(self) -> ConversationOrchestrator:
        profile = await self.hype.profile()
        chat = ConversationOrchestrator(
            chat_id=str(uuid4()),
            persona=get_persona(profile.selected_persona),
            generator=self.generator,
            memory=self.memory,
            voice=self.voice,
            recognizer=PushRecognizer(),
            entitlements=self.entitlements,
            bridge=self.bridge,
            clock=self._clock,
            memory_limit=self._memory_limit,
        )
        self._chats[chat.chat_id] = chat
        logger.info("chat.opened", chat_id=chat.chat_id, persona=chat.persona.id)
        return chat

    def chat(self, chat_id: str) -> ConversationOrchestrator:
        chat = self._chats.get(chat_id)
        if chat is None:
            raise ChatNotFound(chat_id)
        return chat

    async def close_chat(self, chat_id: str) -> None:
        chat = self._chats.pop(chat_id, None)
        if chat is None:
            raise ChatNotFound(chat_id)
        await chat.close()
        await self.bridge.forget(chat_id)


async def bootstrap_runtime(settings: AppSettings, bridge: StateBridge | None = None) -> Runtime:
    # sounddevice loads PortAudio on import, so the device layer is imported only here.
    from hypebuddy.audio.output import AudioOutputController

    store = SessionStore(settings.database.dsn, settings.database.max_pool_size)
    memory = MemoryProvider(store)
    generator = GenerationClient.from_settings(settings.llm)
    entitlements = StaticEntitlements(premium=settings.PREMIUM_OVERRIDE)
    remote = EdgeTTSClient(settings.edge_tts) if settings.edge_tts is not None else None
    if remote is None:
        logger.info("voice.remote.disabled")
    voice = VoiceDeliveryPipeline(
        local=Pyttsx3Synthesizer(),
        audio=AudioOutputController(),
        voice_settings=settings.voice,
        remote=remote,
    )
    reminders = ReminderScheduler(win_log_delay=timedelta(seconds=settings.notifications.win_log_delay_seconds))
    quota = QuotaPolicy(
        allotment=settings.quota.free_hypes_per_period,
        free_history_limit=settings.quota.free_history_limit,
    )
    hype = HypeService(
        store=store,
        memory=memory,
        generator=generator,
        entitlements=entitlements,
        quota=quota,
        reminders=reminders,
        memory_limit=settings.quota.memory_wins_limit,
    )
    closers: list[Callable[[], Any]] = [generator.aclose]
    if remote is not None:
        closers.append(remote.aclose)
    return Runtime(
        store=store,
        memory=memory,
        generator=generator,
        voice=voice,
        hype=hype,
        entitlements=entitlements,
        bridge=bridge or StateBridge(),
        reminders=reminders,
        memory_limit=settings.quota.memory_wins_limit,
        closers=closers,
    )


class HypeRequest(BaseModel):
    scenario: Scenario | None = None
    custom_input: str | None = None


class OutcomeRequest(BaseModel):
    outcome: Literal["win", "meh", "tough"]
    notes: str | None = None


class PersonaSelectRequest(BaseModel):
    persona: str


class MessageRequest(BaseModel):
    text: str
    wait: bool = False


class PartialTranscriptRequest(BaseModel):
    text: str


class FinishCaptureRequest(BaseModel):
    text: str | None = None


class VoiceOutputRequest(BaseModel):
    enabled: bool


def _error_handler(status_code: int) -> Callable[[Request, Exception], Any]:
    async def _handle(_: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return _handle


def create_app(runtime: Runtime | None = None, settings: AppSettings | None = None) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.telemetry)
    configure_tracing(settings.telemetry)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        active = runtime or await bootstrap_runtime(settings, bridge)
        await active.start()
        app.state.runtime = active
        try:
            yield
        finally:
            await active.shutdown()

    bridge = runtime.bridge if runtime is not None else StateBridge()
    app = FastAPI(title="Hype Buddy", lifespan=lifespan)
    app.include_router(bridge.router)
    app.add_exception_handler(QuotaExceeded, _error_handler(402))
    app.add_exception_handler(PersonaLocked, _error_handler(403))
    app.add_exception_handler(SessionNotFound, _error_handler(404))
    app.add_exception_handler(ChatNotFound, _error_handler(404))
    app.add_exception_handler(OutcomeAlreadyLogged, _error_handler(409))
    app.add_exception_handler(GenerationError, _error_handler(502))
    app.add_exception_handler(ValueError, _error_handler(400))

    def current(request: Request) -> Runtime:
        active = getattr(request.app.state, "runtime", None)
        if active is None:
            raise HTTPException(status_code=503, detail="runtime unavailable")
        return active

    @app.get("/personas")
    async def list_personas(request: Request) -> dict[str, object]:
        profile = await current(request).hype.profile()
        unlocked = set(profile.unlocked_personas or [])
        return {
            "selected": profile.selected_persona,
            "personas": [{**persona.to_dict(), "unlocked": persona.id in unlocked} for persona in PERSONAS.values()],
        }

    @app.get("/scenarios")
    async def list_scenarios() -> dict[str, object]:
        return {"scenarios": [{"id": scenario.value, "title": scenario.title} for scenario in Scenario]}

    @app.get("/profile")
    async def get_profile(request: Request) -> dict[str, object]:
        return (await current(request).hype.profile()).to_dict()

    @app.post("/profile/persona")
    async def select_persona(req: PersonaSelectRequest, request: Request) -> dict[str, object]:
        profile = await current(request).hype.select_persona(req.persona)
        return profile.to_dict()

    @app.post("/hypes")
    async def create_hype(req: HypeRequest, request: Request) -> dict[str, object]:
        result = await current(request).hype.generate_hype(req.scenario, req.custom_input)
        return result.to_dict()

    @app.get("/sessions")
    async def list_sessions(request: Request, view: Literal["all", "wins", "pending"] = "all") -> dict[str, object]:
        sessions = await current(request).hype.history(view)
        return {"sessions": [session.to_dict() for session in sessions]}

    @app.get("/sessions/pending")
    async def pending_sessions(request: Request) -> dict[str, object]:
        sessions = await current(request).hype.pending()
        return {"sessions": [session.to_dict() for session in sessions]}

    @app.post("/sessions/{session_id}/outcome")
    async def log_outcome(session_id: str, req: OutcomeRequest, request: Request) -> dict[str, object]:
        session = await current(request).hype.log_outcome(session_id, req.outcome, req.notes)
        return session.to_dict()

    @app.delete("/sessions/{session_id}")
    async def delete_session(session_id: str, request: Request) -> dict[str, bool]:
        if not await current(request).hype.delete_session(session_id):
            raise SessionNotFound(session_id)
        return {"deleted": True}

    @app.get("/stats")
    async def stats(request: Request) -> dict[str, object]:
        return await current(request).hype.stats()

    @app.post("/chat")
    async def open_chat(request: Request) -> dict[str, object]:
        chat = await current(request).open_chat()
        return {"chat_id": chat.chat_id, "persona": chat.persona.to_dict(), "state": chat.state.to_dict()}

    @app.get("/chat/{chat_id}")
    async def chat_state(chat_id: str, request: Request) -> dict[str, object]:
        return current(request).chat(chat_id).state.to_dict()

    @app.post("/chat/{chat_id}/messages")
    async def send_message(chat_id: str, req: MessageRequest, request: Request) -> dict[str, object]:
        chat = current(request).chat(chat_id)
        state = await chat.submit_text(req.text)
        if req.wait:
            state = await chat.wait_settled()
        return state.to_dict()

    @app.post("/chat/{chat_id}/capture/start")
    async def capture_start(chat_id: str, request: Request) -> dict[str, object]:
        state = await current(request).chat(chat_id).start_capture()
        return state.to_dict()

    @app.post("/chat/{chat_id}/capture/partial")
    async def capture_partial(chat_id: str, req: PartialTranscriptRequest, request: Request) -> dict[str, str]:
        recognizer = current(request).chat(chat_id).recognizer
        if isinstance(recognizer, PushRecognizer):
            await recognizer.push_partial(req.text)
        return {"status": "ok"}

    @app.post("/chat/{chat_id}/capture/finish")
    async def capture_finish(chat_id: str, req: FinishCaptureRequest, request: Request) -> dict[str, object]:
        chat = current(request).chat(chat_id)
        if req.text is not None and isinstance(chat.recognizer, PushRecognizer):
            await chat.recognizer.push_final(req.text)
        state = await chat.finish_capture()
        return state.to_dict()

    @app.post("/chat/{chat_id}/cancel")
    async def cancel(chat_id: str, request: Request) -> dict[str, object]:
        return (await current(request).chat(chat_id).cancel()).to_dict()

    @app.post("/chat/{chat_id}/dismiss")
    async def dismiss(chat_id: str, request: Request) -> dict[str, object]:
        return (await current(request).chat(chat_id).dismiss_error()).to_dict()

    @app.post("/chat/{chat_id}/voice-output")
    async def voice_output(chat_id: str, req: VoiceOutputRequest, request: Request) -> dict[str, object]:
        return (await current(request).chat(chat_id).set_voice_output(req.enabled)).to_dict()

    @app.delete("/chat/{chat_id}")
    async def close_chat(chat_id: str, request: Request) -> dict[str, bool]:
        await current(request).close_chat(chat_id)
        return {"closed": True}

    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = load_settings()
    uvicorn.run("hypebuddy.main:app", host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


__all__ = ["Runtime", "ChatNotFound", "bootstrap_runtime", "create_app", "app", "run"]
