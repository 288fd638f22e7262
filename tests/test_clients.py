"""
tests/test_clients.py
======================
Provider Client Tests — VoiceRelay

Tests verify:
    1. Settings are read from the environment with defaults
    2. The OpenAI client is built with credential, timeout and no retries
    3. Transcription returns text, or None on any failure
    4. Completion sends the transcript verbatim with the length cap
    5. Synthesis returns audio bytes with the configured voice/format

All tests are OFFLINE — the OpenAI client is mocked.
"""

import os
import sys
import tempfile
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from voicerelay.config import RelaySettings
from voicerelay.llm.completion import CompletionError, generate_reply
from voicerelay.openai_client import build_client
from voicerelay.stt.transcriber import transcribe
from voicerelay.tts.synthesizer import SynthesisError, synthesize


def _settings(**overrides) -> RelaySettings:
    values = {"openai_api_key": "sk-test", "resources_dir": Path(tempfile.gettempdir())}
    values.update(overrides)
    return RelaySettings(**values)


def _chat_response(content):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )


# ===================================================================
# Configuration
# ===================================================================


class TestRelaySettings(unittest.TestCase):

    def test_defaults_when_environment_is_empty(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = RelaySettings.from_env()
        self.assertEqual(settings.port, 3000)
        self.assertIsNone(settings.openai_api_key)
        self.assertEqual(settings.transcription_model, "whisper-1")
        self.assertEqual(settings.completion_model, "gpt-3.5-turbo")
        self.assertEqual(settings.completion_role, "system")
        self.assertEqual(settings.max_reply_tokens, 30)
        self.assertEqual(settings.speech_voice, "echo")
        self.assertEqual(settings.speech_format, "wav")
        self.assertEqual(settings.cors_origins, ["*"])
        self.assertIsNone(settings.webhook_url)

    def test_environment_overrides(self):
        env = {
            "PORT": "8080",
            "OPENAI_API_KEY": "sk-env",
            "MAX_REPLY_TOKENS": "12",
            "SPEECH_VOICE": "alloy",
            "OPENAI_TIMEOUT_SECONDS": "7.5",
            "CORS_ORIGINS": "http://a.test, http://b.test",
            "WEBHOOK_URL": "http://hook.test/done",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = RelaySettings.from_env()
        self.assertEqual(settings.port, 8080)
        self.assertEqual(settings.openai_api_key, "sk-env")
        self.assertEqual(settings.max_reply_tokens, 12)
        self.assertEqual(settings.speech_voice, "alloy")
        self.assertEqual(settings.request_timeout_seconds, 7.5)
        self.assertEqual(settings.cors_origins, ["http://a.test", "http://b.test"])
        self.assertEqual(settings.webhook_url, "http://hook.test/done")

    def test_invalid_port_raises(self):
        with patch.dict(os.environ, {"PORT": "not-a-port"}, clear=True):
            with self.assertRaises(ValueError):
                RelaySettings.from_env()


class TestBuildClient(unittest.TestCase):

    @patch("voicerelay.openai_client.OpenAI")
    def test_client_uses_timeout_and_no_retries(self, mock_openai):
        build_client(_settings(request_timeout_seconds=12.0))
        mock_openai.assert_called_once_with(api_key="sk-test", timeout=12.0, max_retries=0)


# ===================================================================
# Transcription
# ===================================================================


class TestTranscribe(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.audio_path = Path(self._tmp.name) / "recording.wav"
        self.audio_path.write_bytes(b"RIFF fake audio")

    def tearDown(self):
        self._tmp.cleanup()

    @patch("voicerelay.stt.transcriber.build_client")
    def test_returns_stripped_text(self, mock_build):
        client = MagicMock()
        client.audio.transcriptions.create.return_value = "  what is 2+2\n"
        mock_build.return_value = client

        self.assertEqual(transcribe(self.audio_path, _settings()), "what is 2+2")

        kwargs = client.audio.transcriptions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "whisper-1")
        self.assertEqual(kwargs["response_format"], "text")

    @patch("voicerelay.stt.transcriber.build_client")
    def test_silence_gives_empty_string(self, mock_build):
        client = MagicMock()
        client.audio.transcriptions.create.return_value = "\n"
        mock_build.return_value = client
        self.assertEqual(transcribe(self.audio_path, _settings()), "")

    @patch("voicerelay.stt.transcriber.build_client")
    def test_provider_error_returns_none(self, mock_build):
        client = MagicMock()
        client.audio.transcriptions.create.side_effect = RuntimeError("boom")
        mock_build.return_value = client
        self.assertIsNone(transcribe(self.audio_path, _settings()))

    @patch("voicerelay.stt.transcriber.build_client")
    def test_missing_credential_returns_none(self, mock_build):
        mock_build.side_effect = RuntimeError("api_key must be set")
        self.assertIsNone(transcribe(self.audio_path, _settings()))

    @patch("voicerelay.stt.transcriber.build_client")
    def test_missing_file_returns_none(self, mock_build):
        mock_build.return_value = MagicMock()
        self.assertIsNone(transcribe(self.audio_path.with_name("absent.wav"), _settings()))

    @patch("voicerelay.stt.transcriber.build_client")
    def test_unexpected_payload_returns_none(self, mock_build):
        client = MagicMock()
        client.audio.transcriptions.create.return_value = object()
        mock_build.return_value = client
        self.assertIsNone(transcribe(self.audio_path, _settings()))


# ===================================================================
# Completion
# ===================================================================


class TestGenerateReply(unittest.TestCase):

    @patch("voicerelay.llm.completion.build_client")
    def test_transcript_sent_verbatim_with_length_cap(self, mock_build):
        client = MagicMock()
        client.chat.completions.create.return_value = _chat_response(" It is four. ")
        mock_build.return_value = client

        reply = generate_reply("what is 2+2", _settings(max_reply_tokens=30))

        self.assertEqual(reply, "It is four.")
        kwargs = client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["messages"], [{"role": "system", "content": "what is 2+2"}])
        self.assertEqual(kwargs["max_tokens"], 30)
        self.assertEqual(kwargs["model"], "gpt-3.5-turbo")

    @patch("voicerelay.llm.completion.build_client")
    def test_message_role_is_configurable(self, mock_build):
        client = MagicMock()
        client.chat.completions.create.return_value = _chat_response("Hi.")
        mock_build.return_value = client

        generate_reply("hello", _settings(completion_role="user"))

        messages = client.chat.completions.create.call_args.kwargs["messages"]
        self.assertEqual(messages, [{"role": "user", "content": "hello"}])

    @patch("voicerelay.llm.completion.build_client")
    def test_provider_error_raises(self, mock_build):
        client = MagicMock()
        client.chat.completions.create.side_effect = RuntimeError("429")
        mock_build.return_value = client
        with self.assertRaises(CompletionError):
            generate_reply("hello", _settings())

    @patch("voicerelay.llm.completion.build_client")
    def test_empty_reply_raises(self, mock_build):
        client = MagicMock()
        client.chat.completions.create.return_value = _chat_response(None)
        mock_build.return_value = client
        with self.assertRaises(CompletionError):
            generate_reply("hello", _settings())

    @patch("voicerelay.llm.completion.build_client")
    def test_no_choices_raises(self, mock_build):
        client = MagicMock()
        client.chat.completions.create.return_value = SimpleNamespace(choices=[])
        mock_build.return_value = client
        with self.assertRaises(CompletionError):
            generate_reply("hello", _settings())


# ===================================================================
# Synthesis
# ===================================================================


class TestSynthesize(unittest.TestCase):

    @patch("voicerelay.tts.synthesizer.build_client")
    def test_returns_audio_bytes(self, mock_build):
        client = MagicMock()
        client.audio.speech.create.return_value = SimpleNamespace(content=b"RIFFdata")
        mock_build.return_value = client

        self.assertEqual(synthesize("It is four.", _settings()), b"RIFFdata")

        kwargs = client.audio.speech.create.call_args.kwargs
        self.assertEqual(kwargs["input"], "It is four.")
        self.assertEqual(kwargs["model"], "tts-1")
        self.assertEqual(kwargs["voice"], "echo")
        self.assertEqual(kwargs["response_format"], "wav")

    @patch("voicerelay.tts.synthesizer.build_client")
    def test_provider_error_raises(self, mock_build):
        client = MagicMock()
        client.audio.speech.create.side_effect = RuntimeError("down")
        mock_build.return_value = client
        with self.assertRaises(SynthesisError):
            synthesize("hi", _settings())

    @patch("voicerelay.tts.synthesizer.build_client")
    def test_empty_audio_raises(self, mock_build):
        client = MagicMock()
        client.audio.speech.create.return_value = SimpleNamespace(content=b"")
        mock_build.return_value = client
        with self.assertRaises(SynthesisError):
            synthesize("hi", _settings())


if __name__ == "__main__":
    unittest.main()
