from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

from apps.voicechat.core.settings import Settings, chat_generation_config
from apps.voicechat.image.base import IImageClient
from apps.voicechat.image.gemini_image import GeminiImage
from apps.voicechat.image.openai_image import OpenAIImage
from apps.voicechat.llm.base import IChatClient
from apps.voicechat.llm.gemini_chat import GeminiChat
from apps.voicechat.llm.openai_chat import OpenAIChat
from apps.voicechat.stt.base import ISpeechToTextClient
from apps.voicechat.stt.google_service import GoogleSTT
from apps.voicechat.stt.openai_service import OpenAISTT
from apps.voicechat.tts.google_service import GoogleTTS
from apps.voicechat.tts.openai_compat import OpenAICompatTTS
from apps.voicechat.tts.router import VoiceRouter


@dataclass
class Providers:
    chat: IChatClient
    image: IImageClient
    stt: ISpeechToTextClient
    tts: VoiceRouter

    def describe(self) -> Dict[str, str]:
        return {
            "llm": self.chat.provider,
            "image": self.image.provider,
            "stt": self.stt.provider,
            "tts_primary": self.tts.primary.provider,
            "tts_secondary": self.tts.secondary.provider,
        }


def make_chat_client(settings: Settings) -> IChatClient:
    prov = (settings.llm_provider or "").strip().lower()
    gen_cfg = chat_generation_config(settings) or None
    if prov == "gemini":
        return GeminiChat(api_key=settings.gemini_api_key, model=settings.gemini_model, generation_config=gen_cfg)
    if prov == "openai":
        return OpenAIChat(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            base_url=settings.openai_base_url,
            timeout=settings.request_timeout,
            generation_config=gen_cfg,
        )
    raise ValueError(f"unknown llm_provider: {prov!r}")


def make_image_client(settings: Settings) -> IImageClient:
    prov = (settings.image_provider or "").strip().lower()
    if prov == "openai":
        return OpenAIImage(
            api_key=settings.openai_api_key,
            model=settings.openai_image_model,
            base_url=settings.openai_base_url,
            timeout=settings.request_timeout,
        )
    if prov == "gemini":
        return GeminiImage(api_key=settings.gemini_api_key, model=settings.gemini_image_model)
    raise ValueError(f"unknown image_provider: {prov!r}")


def make_stt_client(settings: Settings) -> ISpeechToTextClient:
    prov = (settings.stt_provider or "").strip().lower()
    if prov == "google":
        return GoogleSTT(language_code=settings.stt_language)
    if prov == "openai":
        return OpenAISTT(
            api_key=settings.openai_api_key,
            model=settings.openai_whisper_model,
            language=settings.stt_language,
            base_url=settings.openai_base_url,
            timeout=settings.request_timeout,
        )
    raise ValueError(f"unknown stt_provider: {prov!r}")


def make_voice_router(settings: Settings) -> VoiceRouter:
    return VoiceRouter(
        primary=GoogleTTS(sample_rate_hz=settings.tts_sample_rate_hz),
        secondary=OpenAICompatTTS(
            base_url=settings.compat_tts_base_url,
            api_key=settings.compat_tts_api_key,
            model=settings.compat_tts_model,
            timeout=settings.compat_tts_timeout,
        ),
    )


def build_providers(settings: Settings) -> Providers:
    return Providers(
        chat=make_chat_client(settings),
        image=make_image_client(settings),
        stt=make_stt_client(settings),
        tts=make_voice_router(settings),
    )
