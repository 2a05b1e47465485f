from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from apps.voicechat.core.types import Gender, Voice, VoiceCatalog

# Primary catalog: Google Cloud Text-to-Speech voices behind short ids.
PRIMARY_VOICES: Tuple[Voice, ...] = (
    Voice(id="tongtong", name="Tongtong (warm, friendly)", gender=Gender.female, language="zh",
          catalog=VoiceCatalog.primary, provider_voice="cmn-CN-Wavenet-A"),
    Voice(id="chuichui", name="Chuichui (lively)", gender=Gender.female, language="zh",
          catalog=VoiceCatalog.primary, provider_voice="cmn-CN-Wavenet-D"),
    Voice(id="xiaochen", name="Xiaochen (calm, professional)", gender=Gender.female, language="zh",
          catalog=VoiceCatalog.primary, provider_voice="cmn-CN-Standard-D"),
    Voice(id="jam", name="Jam (British gentleman)", gender=Gender.male, language="en",
          catalog=VoiceCatalog.primary, provider_voice="en-GB-Neural2-B"),
    Voice(id="kazi", name="Kazi (clear, standard)", gender=Gender.male, language="en",
          catalog=VoiceCatalog.primary, provider_voice="en-US-Neural2-D"),
    Voice(id="douji", name="Douji (natural)", gender=Gender.male, language="en",
          catalog=VoiceCatalog.primary, provider_voice="en-US-Neural2-J"),
    Voice(id="luodo", name="Luodo (expressive)", gender=Gender.male, language="en",
          catalog=VoiceCatalog.primary, provider_voice="en-US-Neural2-I"),
)

# Secondary catalog: OpenAI-style voice ids for an OpenAI-compatible speech server.
SECONDARY_VOICES: Tuple[Voice, ...] = (
    Voice(id="alloy", name="Alloy (American)", gender=Gender.female, language="en",
          catalog=VoiceCatalog.secondary, provider_voice="alloy"),
    Voice(id="echo", name="Echo (American)", gender=Gender.male, language="en",
          catalog=VoiceCatalog.secondary, provider_voice="echo"),
    Voice(id="fable", name="Fable (American)", gender=Gender.male, language="en",
          catalog=VoiceCatalog.secondary, provider_voice="fable"),
    Voice(id="onyx", name="Onyx (American)", gender=Gender.male, language="en",
          catalog=VoiceCatalog.secondary, provider_voice="onyx"),
    Voice(id="nova", name="Nova (American)", gender=Gender.female, language="en",
          catalog=VoiceCatalog.secondary, provider_voice="nova"),
    Voice(id="shimmer", name="Shimmer (American)", gender=Gender.female, language="en",
          catalog=VoiceCatalog.secondary, provider_voice="shimmer"),
)

_BY_ID: Dict[str, Voice] = {v.id: v for v in PRIMARY_VOICES + SECONDARY_VOICES}


def all_voices() -> List[Voice]:
    return list(PRIMARY_VOICES + SECONDARY_VOICES)


def find_voice(voice_id: str) -> Optional[Voice]:
    return _BY_ID.get(voice_id)
