from __future__ import annotations

import array
import io
import unittest
import wave
from types import SimpleNamespace
from typing import Any, Dict, List

from apps.voicechat.core.errors import InvalidVoiceError, ProviderError
from apps.voicechat.core.voices import all_voices, find_voice, PRIMARY_VOICES, SECONDARY_VOICES
from apps.voicechat.image.gemini_image import GeminiImage
from apps.voicechat.image.openai_image import OpenAIImage
from apps.voicechat.image.sizes import nearest_aspect_ratio, nearest_openai_size
from apps.voicechat.llm.gemini_chat import GeminiChat, resp_to_text, to_gemini_contents
from apps.voicechat.llm.openai_chat import OpenAIChat
from apps.voicechat.stt.audio import decode_audio_b64, sniff_audio_format, strip_data_url, wav_to_mono_pcm16
from apps.voicechat.stt.google_service import GoogleSTT
from apps.voicechat.stt.openai_service import OpenAISTT
from apps.voicechat.tts.google_service import GoogleTTS, apply_pcm_fade, language_code_for, pcm_to_wav
from apps.voicechat.tts.openai_compat import OpenAICompatTTS
from apps.voicechat.tts.router import VoiceRouter
from fakes import FakeSpeech


class _Recorder:
    """Callable that records kwargs and returns a canned response."""

    def __init__(self, response: Any) -> None:
        self.response = response
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        return self.response


def _wav(samples: List[int], *, channels: int = 1, rate: int = 16000) -> bytes:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(2)
        wf.setframerate(rate)
        wf.writeframes(array.array("h", samples).tobytes())
    return buf.getvalue()


class TestChatClients(unittest.TestCase):
    def test_gemini_contents_mapping(self) -> None:
        system, contents = to_gemini_contents(
            [
                {"role": "system", "content": "SYS"},
                {"role": "user", "content": "hi"},
                {"role": "assistant", "content": "hello"},
            ]
        )
        self.assertEqual(system, "SYS")
        self.assertEqual([c["role"] for c in contents], ["user", "model"])
        self.assertEqual(contents[1]["parts"], [{"text": "hello"}])

    def test_gemini_generate_passes_system_instruction(self) -> None:
        rec = _Recorder(SimpleNamespace(text="answer", candidates=None))
        fake = SimpleNamespace(models=SimpleNamespace(generate_content=rec))
        llm = GeminiChat(api_key="k", model="gemini-test", _client=fake)
        out = llm.generate(messages=[{"role": "system", "content": "SYS"}, {"role": "user", "content": "hi"}])
        self.assertEqual(out.text, "answer")
        self.assertEqual(rec.calls[0]["model"], "gemini-test")
        self.assertEqual(rec.calls[0]["config"], {"system_instruction": "SYS"})

    def test_gemini_contents_start_with_user_turn(self) -> None:
        # A trimmed window can begin with an orphaned assistant reply.
        _, contents = to_gemini_contents(
            [
                {"role": "system", "content": "SYS"},
                {"role": "assistant", "content": "orphan"},
                {"role": "user", "content": "q1"},
                {"role": "assistant", "content": "a1"},
            ]
        )
        self.assertEqual([c["role"] for c in contents], ["user", "model"])
        self.assertEqual(contents[0]["parts"], [{"text": "q1"}])

    def test_gemini_contents_merge_adjacent_user_turns(self) -> None:
        # Left behind when a chat call failed after the user turn was stored.
        _, contents = to_gemini_contents(
            [
                {"role": "user", "content": "first"},
                {"role": "user", "content": "second"},
                {"role": "assistant", "content": "reply"},
            ]
        )
        self.assertEqual([c["role"] for c in contents], ["user", "model"])
        self.assertEqual(contents[0]["parts"], [{"text": "first"}, {"text": "second"}])

    def test_gemini_generate_merges_generation_config(self) -> None:
        rec = _Recorder(SimpleNamespace(text="answer", candidates=None))
        fake = SimpleNamespace(models=SimpleNamespace(generate_content=rec))
        llm = GeminiChat(
            api_key="k",
            model="gemini-test",
            generation_config={"temperature": 0.3, "max_output_tokens": 256},
            _client=fake,
        )
        llm.generate(messages=[{"role": "system", "content": "SYS"}, {"role": "user", "content": "hi"}])
        self.assertEqual(
            rec.calls[0]["config"],
            {"temperature": 0.3, "max_output_tokens": 256, "system_instruction": "SYS"},
        )

    def test_resp_to_text_prefers_joined_parts(self) -> None:
        resp = {
            "candidates": [
                {"content": {"parts": [{"text": "Hello, "}, {"text": "world."}]}},
            ]
        }
        self.assertEqual(resp_to_text(resp), "Hello, world.")

    def test_gemini_missing_key(self) -> None:
        with self.assertRaises(ProviderError):
            GeminiChat(api_key="", model="m").generate(messages=[{"role": "user", "content": "x"}])

    def test_openai_chat_reads_first_choice(self) -> None:
        resp = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="pong"))])
        rec = _Recorder(resp)
        fake = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=rec)))
        llm = OpenAIChat(api_key="k", model="gpt-test", generation_config={"max_output_tokens": 50}, _client=fake)
        msgs = [{"role": "user", "content": "ping"}]
        self.assertEqual(llm.generate(messages=msgs).text, "pong")
        self.assertEqual(rec.calls[0], {"model": "gpt-test", "messages": msgs, "max_tokens": 50})

    def test_openai_chat_without_choices(self) -> None:
        fake = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=_Recorder(SimpleNamespace(choices=[])))))
        self.assertEqual(OpenAIChat(api_key="k", model="m", _client=fake).generate(messages=[]).text, "")

    def test_openai_missing_key(self) -> None:
        with self.assertRaises(ProviderError):
            OpenAIChat(api_key=" ", model="m").generate(messages=[])


class TestImageClients(unittest.TestCase):
    def test_size_mapping(self) -> None:
        self.assertEqual(nearest_aspect_ratio("1024x1024"), "1:1")
        self.assertEqual(nearest_aspect_ratio("1344x768"), "16:9")
        self.assertEqual(nearest_aspect_ratio("720x1440"), "9:16")
        self.assertEqual(nearest_aspect_ratio("1152x864"), "4:3")
        self.assertEqual(nearest_aspect_ratio("864x1152"), "3:4")
        self.assertEqual(nearest_openai_size("1440x720", model="gpt-image-1"), "1536x1024")
        self.assertEqual(nearest_openai_size("768x1344", model="dall-e-3"), "1024x1792")
        self.assertEqual(nearest_openai_size("1440x720", model="dall-e-2"), "1024x1024")
        self.assertEqual(nearest_openai_size("768x1344", model="dall-e-2"), "1024x1024")

    def test_openai_image(self) -> None:
        rec = _Recorder(SimpleNamespace(data=[SimpleNamespace(b64_json="QUJD")]))
        fake = SimpleNamespace(images=SimpleNamespace(generate=rec))
        out = OpenAIImage(api_key="k", model="dall-e-3", _client=fake).generate(prompt="fox", size="1024x1024")
        self.assertEqual(out.to_data_url(), "data:image/png;base64,QUJD")
        self.assertEqual(rec.calls[0]["response_format"], "b64_json")
        self.assertEqual(rec.calls[0]["size"], "1024x1024")

    def test_gemini_image_encodes_bytes(self) -> None:
        image = SimpleNamespace(image_bytes=b"ABC", mime_type="image/jpeg")
        rec = _Recorder(SimpleNamespace(generated_images=[SimpleNamespace(image=image)]))
        fake = SimpleNamespace(models=SimpleNamespace(generate_images=rec))
        out = GeminiImage(api_key="k", _client=fake).generate(prompt="fox", size="1440x720")
        self.assertEqual(out.to_data_url(), "data:image/jpeg;base64,QUJD")
        self.assertEqual(rec.calls[0]["config"]["aspect_ratio"], "16:9")


class TestAudioHelpers(unittest.TestCase):
    def test_strip_and_decode(self) -> None:
        self.assertEqual(strip_data_url("data:audio/wav;base64,QUJD"), "QUJD")
        self.assertEqual(decode_audio_b64("QU\nJD"), b"ABC")
        with self.assertRaises(ValueError):
            decode_audio_b64("***")

    def test_sniff(self) -> None:
        self.assertEqual(sniff_audio_format(_wav([0, 1])), "wav")
        self.assertEqual(sniff_audio_format(b"\x1a\x45\xdf\xa3...."), "webm")
        self.assertEqual(sniff_audio_format(b"OggS...."), "ogg")
        self.assertEqual(sniff_audio_format(b"ID3\x03"), "mp3")
        self.assertEqual(sniff_audio_format(b"\x00\x00\x00\x18ftypM4A "), "mp4")
        self.assertEqual(sniff_audio_format(b"????"), "unknown")

    def test_wav_downmix(self) -> None:
        pcm, rate = wav_to_mono_pcm16(_wav([100, 300, -100, -300], channels=2, rate=8000))
        self.assertEqual(rate, 8000)
        self.assertEqual(list(array.array("h", pcm)), [200, -200])

    def test_invalid_wav(self) -> None:
        with self.assertRaises(ValueError):
            wav_to_mono_pcm16(b"RIFF....WAVEjunk")

    def test_openai_stt_names_file_by_container(self) -> None:
        rec = _Recorder(SimpleNamespace(text=" hi "))
        fake = SimpleNamespace(audio=SimpleNamespace(transcriptions=SimpleNamespace(create=rec)))
        stt = OpenAISTT(api_key="k", language="en-US", _client=fake)
        self.assertEqual(stt.transcribe(audio_bytes=b"OggS....").text, "hi")
        self.assertEqual(rec.calls[0]["file"].name, "audio.ogg")
        self.assertEqual(rec.calls[0]["language"], "en")


def _recognize_response(*transcripts: str) -> Any:
    results = [SimpleNamespace(alternatives=[SimpleNamespace(transcript=t)]) for t in transcripts]
    results.append(SimpleNamespace(alternatives=[]))
    return SimpleNamespace(results=results)


class TestGoogleSTT(unittest.TestCase):
    def setUp(self) -> None:
        from google.cloud import speech

        self.enc = speech.RecognitionConfig.AudioEncoding
        self.rec = _Recorder(_recognize_response(" hello ", "world"))
        self.stt = GoogleSTT(language_code="en-GB", _client=SimpleNamespace(recognize=self.rec))

    def test_wav_is_sent_as_mono_linear16(self) -> None:
        out = self.stt.transcribe(audio_bytes=_wav([100, 300, -100, -300], channels=2, rate=8000))
        self.assertEqual(out.text, "hello world")
        config = self.rec.calls[0]["config"]
        self.assertEqual(config.encoding, self.enc.LINEAR16)
        self.assertEqual(config.sample_rate_hertz, 8000)
        self.assertEqual(config.language_code, "en-GB")
        self.assertEqual(list(array.array("h", self.rec.calls[0]["audio"].content)), [200, -200])

    def test_browser_opus_containers(self) -> None:
        webm = b"\x1a\x45\xdf\xa3webm-bytes"
        self.stt.transcribe(audio_bytes=webm)
        self.stt.transcribe(audio_bytes=b"OggSogg-bytes")
        webm_cfg = self.rec.calls[0]["config"]
        self.assertEqual(webm_cfg.encoding, self.enc.WEBM_OPUS)
        self.assertEqual(webm_cfg.sample_rate_hertz, 48000)
        self.assertEqual(self.rec.calls[0]["audio"].content, webm)
        self.assertEqual(self.rec.calls[1]["config"].encoding, self.enc.OGG_OPUS)

    def test_flac_leaves_sample_rate_to_the_header(self) -> None:
        self.stt.transcribe(audio_bytes=b"fLaC....")
        config = self.rec.calls[0]["config"]
        self.assertEqual(config.encoding, self.enc.FLAC)
        self.assertEqual(config.sample_rate_hertz, 0)

    def test_unsupported_container(self) -> None:
        with self.assertRaises(ProviderError) as ctx:
            self.stt.transcribe(audio_bytes=b"ID3\x03mp3")
        self.assertEqual(str(ctx.exception), "unsupported_audio_format:mp3")
        self.assertEqual(self.rec.calls, [])

    def test_corrupt_wav(self) -> None:
        with self.assertRaises(ProviderError):
            self.stt.transcribe(audio_bytes=b"RIFF....WAVEjunk")

    def test_empty_audio_skips_request(self) -> None:
        self.assertEqual(self.stt.transcribe(audio_bytes=b"").text, "")
        self.assertEqual(self.rec.calls, [])


class TestSpeech(unittest.TestCase):
    def test_catalogs_are_disjoint_and_unique(self) -> None:
        primary = {v.id for v in PRIMARY_VOICES}
        secondary = {v.id for v in SECONDARY_VOICES}
        self.assertFalse(primary & secondary)
        self.assertEqual(len(all_voices()), len(primary) + len(secondary))
        self.assertIsNone(find_voice("missing"))

    def test_router_dispatch(self) -> None:
        primary = FakeSpeech("google", "audio/wav")
        secondary = FakeSpeech("openai", "audio/mpeg")
        router = VoiceRouter(primary=primary, secondary=secondary)
        for v in PRIMARY_VOICES:
            self.assertEqual(router.synthesize(text="x", voice_id=v.id).media_type, "audio/wav")
        for v in SECONDARY_VOICES:
            self.assertEqual(router.synthesize(text="x", voice_id=v.id).media_type, "audio/mpeg")
        self.assertEqual(len(primary.calls), len(PRIMARY_VOICES))
        self.assertEqual(len(secondary.calls), len(SECONDARY_VOICES))
        with self.assertRaises(InvalidVoiceError):
            router.synthesize(text="x", voice_id="ghost")

    def test_fade_and_wav_wrap(self) -> None:
        pcm = array.array("h", [1000] * 1000).tobytes()
        faded = array.array("h", apply_pcm_fade(pcm, sample_rate=24000, fade_in_ms=8, fade_out_ms=8))
        self.assertEqual(faded[0], 0)
        self.assertEqual(faded[-1], 0)
        self.assertEqual(faded[500], 1000)

        wav_bytes = pcm_to_wav(pcm, sample_rate=24000)
        with wave.open(io.BytesIO(wav_bytes), "rb") as wf:
            self.assertEqual(wf.getframerate(), 24000)
            self.assertEqual(wf.getnframes(), 1000)
        self.assertEqual(language_code_for("en-GB-Neural2-B"), "en-GB")

    def _google_tts(self, audio_content: bytes) -> Any:
        rec = _Recorder(SimpleNamespace(audio_content=audio_content))
        tts = GoogleTTS(sample_rate_hz=24000, _client=SimpleNamespace(synthesize_speech=rec))
        return tts, rec

    def test_google_tts_strips_riff_header_and_fades(self) -> None:
        tts, rec = self._google_tts(_wav([1000] * 1000, rate=24000))
        voice = find_voice("kazi")
        assert voice is not None
        out = tts.synthesize(text="hello", voice=voice, speed=1.5)
        self.assertEqual(out.media_type, "audio/wav")
        with wave.open(io.BytesIO(out.audio), "rb") as wf:
            self.assertEqual(wf.getframerate(), 24000)
            self.assertEqual(wf.getnframes(), 1000)
            samples = array.array("h", wf.readframes(1000))
        self.assertEqual(samples[0], 0)
        self.assertEqual(samples[500], 1000)

        call = rec.calls[0]
        self.assertEqual(call["voice"].name, voice.provider_voice)
        self.assertEqual(call["voice"].language_code, language_code_for(voice.provider_voice))
        self.assertEqual(call["audio_config"].speaking_rate, 1.5)
        self.assertEqual(call["audio_config"].sample_rate_hertz, 24000)
        self.assertEqual(call["input"].text, "hello")

    def test_google_tts_drops_trailing_odd_byte(self) -> None:
        tts, _ = self._google_tts(array.array("h", [5, 6]).tobytes() + b"\x07")
        voice = find_voice("kazi")
        assert voice is not None
        out = tts.synthesize(text="x", voice=voice)
        with wave.open(io.BytesIO(out.audio), "rb") as wf:
            self.assertEqual(wf.getnframes(), 2)

    def test_google_tts_empty_audio(self) -> None:
        voice = find_voice("kazi")
        assert voice is not None
        for content in (b"", b"\x01", _wav([], rate=24000)):
            tts, _ = self._google_tts(content)
            self.assertEqual(tts.synthesize(text="x", voice=voice).audio, b"")

    def test_compat_tts_request(self) -> None:
        rec = _Recorder(SimpleNamespace(content=b"MP3"))
        fake = SimpleNamespace(audio=SimpleNamespace(speech=SimpleNamespace(create=rec)))
        tts = OpenAICompatTTS(model="tts-1", _client=fake)
        voice = find_voice("onyx")
        assert voice is not None
        out = tts.synthesize(text="hello", voice=voice, speed=1.25)
        self.assertEqual(out.audio, b"MP3")
        self.assertEqual(out.media_type, "audio/mpeg")
        self.assertEqual(rec.calls[0]["voice"], "onyx")
        self.assertEqual(rec.calls[0]["model"], "tts-1")
        self.assertEqual(rec.calls[0]["speed"], 1.25)


if __name__ == "__main__":
    unittest.main()
