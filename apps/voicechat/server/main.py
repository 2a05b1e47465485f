from __future__ import annotations

import math
from typing import Any, Dict, Optional

from fastapi import FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles

from apps.voicechat.conversation.history import DEFAULT_SESSION_ID, SessionRegistry
from apps.voicechat.core.errors import GatewayError
from apps.voicechat.core.logger import setup_logger
from apps.voicechat.core.prompts import resolve_system_prompt
from apps.voicechat.core.settings import Settings, load_settings
from apps.voicechat.core.types import ChatOut, ClearOut, ImageOut, TranscribeOut, VoicesOut
from apps.voicechat.core.voices import all_voices
from apps.voicechat.image.sizes import DEFAULT_SIZE, SUPPORTED_SIZES
from apps.voicechat.server.providers import Providers, build_providers
from apps.voicechat.stt.audio import decode_audio_b64


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": message})


def _upstream_error(message: str) -> JSONResponse:
    return JSONResponse(status_code=500, content={"success": False, "error": message})


def _error_message(e: Exception, default: str) -> str:
    return str(e).strip() or default


def _parse_speed(val: Any, *, min_value: float, max_value: float) -> Optional[float]:
    """Return the speed as float, or None when it is not an in-range number."""
    if val is None:
        return 1.0
    if isinstance(val, bool) or not isinstance(val, (int, float)):
        return None
    speed = float(val)
    if math.isnan(speed) or speed < min_value or speed > max_value:
        return None
    return speed


def _session_id(raw: Optional[str]) -> str:
    return (raw or "").strip()[:128] or DEFAULT_SESSION_ID


def create_app(
    settings: Optional[Settings] = None,
    *,
    providers: Optional[Providers] = None,
    sessions: Optional[SessionRegistry] = None,
) -> FastAPI:
    settings = settings or load_settings()
    logger = setup_logger(level=settings.log_level, logs_dir=settings.logs_dir)
    providers = providers or build_providers(settings)
    if sessions is None:
        sessions = SessionRegistry(
            system_prompt=resolve_system_prompt(settings.system_prompt),
            max_messages=settings.chat_max_history,
            max_sessions=settings.chat_max_sessions,
        )

    app = FastAPI(title="voicechat")
    app.state.settings = settings
    app.state.providers = providers
    app.state.sessions = sessions
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("rejected request body on %s %s", request.method, request.url.path)
        return _bad_request("Invalid request body")

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"ok": True, "providers": providers.describe(), "sessions": len(sessions)}

    @app.get("/")
    def root() -> RedirectResponse:
        return RedirectResponse(url="/ui/")

    @app.post("/chat")
    def chat(payload: Dict[str, Any], x_session_id: Optional[str] = Header(default=None)) -> Any:
        message = payload.get("message")
        if not message or not isinstance(message, str):
            return _bad_request("Message is required and must be a string")
        text = message.strip()
        if not text:
            return _bad_request("Message cannot be empty")

        history = sessions.get(_session_id(x_session_id))
        history.append(role="user", content=text)
        try:
            result = providers.chat.generate(messages=history.messages())
        except Exception as e:
            logger.exception("chat completion failed (provider=%s)", providers.chat.provider)
            return _upstream_error(_error_message(e, "An error occurred while processing your request"))

        reply = result.text or ""
        if not reply.strip():
            logger.warning("chat completion returned no content (provider=%s)", providers.chat.provider)
            return _upstream_error("Failed to generate response")

        history.append(role="assistant", content=reply)
        return ChatOut(response=reply).model_dump(mode="json")

    @app.delete("/chat")
    def chat_clear(x_session_id: Optional[str] = Header(default=None)) -> Dict[str, Any]:
        sessions.reset(_session_id(x_session_id))
        return ClearOut().model_dump(mode="json")

    @app.post("/generate-image")
    def generate_image(payload: Dict[str, Any]) -> Any:
        prompt = payload.get("prompt")
        size = payload.get("size")
        if size is None:
            size = DEFAULT_SIZE
        if not prompt or not isinstance(prompt, str):
            return _bad_request("Prompt is required and must be a string")
        trimmed = prompt.strip()
        if not trimmed:
            return _bad_request("Prompt cannot be empty")
        if not isinstance(size, str) or size not in SUPPORTED_SIZES:
            return _bad_request(f"Invalid size. Supported sizes: {', '.join(SUPPORTED_SIZES)}")

        try:
            result = providers.image.generate(prompt=trimmed, size=size)
        except Exception as e:
            logger.exception("image generation failed (provider=%s)", providers.image.provider)
            return _upstream_error(_error_message(e, "An error occurred while generating image"))

        if not result.base64:
            return _upstream_error("Failed to generate image")
        return ImageOut(image=result.to_data_url(), prompt=trimmed, size=size).model_dump(mode="json")

    @app.post("/transcribe")
    def transcribe(payload: Dict[str, Any]) -> Any:
        audio = payload.get("audio")
        if not audio or not isinstance(audio, str):
            return _bad_request("Audio data is required and must be a base64 string")
        try:
            audio_bytes = decode_audio_b64(audio)
        except ValueError:
            return _bad_request("Audio data is not valid base64")
        if not audio_bytes:
            return _bad_request("Audio data is required and must be a base64 string")

        try:
            result = providers.stt.transcribe(audio_bytes=audio_bytes)
        except Exception as e:
            logger.exception("transcription failed (provider=%s)", providers.stt.provider)
            return _upstream_error(_error_message(e, "An error occurred while transcribing audio"))

        text = (result.text or "").strip()
        if not text:
            return _upstream_error("Failed to transcribe audio")
        return TranscribeOut(transcription=text).model_dump(mode="json")

    @app.post("/tts")
    def tts(payload: Dict[str, Any]) -> Any:
        text = payload.get("text")
        if not text or not isinstance(text, str):
            return _bad_request("Text is required")
        trimmed = text.strip()
        if not trimmed:
            return _bad_request("Text cannot be empty")
        to_speak = trimmed[: settings.tts_max_chars]

        speed = _parse_speed(
            payload.get("speed"),
            min_value=settings.tts_min_speed,
            max_value=settings.tts_max_speed,
        )
        if speed is None:
            return _bad_request(
                f"Speed must be a number between {settings.tts_min_speed} and {settings.tts_max_speed}"
            )

        voice = payload.get("voice")
        if voice is None:
            voice = settings.tts_default_voice
        if not isinstance(voice, str):
            return _bad_request("Invalid voice")

        logger.info("tts voice=%s chars=%d speed=%.2f", voice, len(to_speak), speed)
        try:
            result = providers.tts.synthesize(text=to_speak, voice_id=voice, speed=speed)
        except GatewayError as e:
            if e.status_code == 400:
                return _bad_request(str(e))
            logger.exception("tts failed (voice=%s)", voice)
            return _upstream_error(_error_message(e, "TTS failed"))
        except Exception as e:
            logger.exception("tts failed (voice=%s)", voice)
            return _upstream_error(_error_message(e, "TTS failed"))

        if not result.audio:
            return _upstream_error("TTS failed")
        return Response(
            content=result.audio,
            media_type=result.media_type,
            headers={"Cache-Control": "no-cache"},
        )

    @app.get("/voices")
    def voices() -> Dict[str, Any]:
        return VoicesOut(voices=[v.to_public() for v in all_voices()]).model_dump(mode="json")

    if settings.web_dir.is_dir():
        app.mount("/ui", StaticFiles(directory=str(settings.web_dir), html=True), name="ui")
    else:
        logger.warning("web client directory not found: %s", settings.web_dir)

    return app


app = create_app()
