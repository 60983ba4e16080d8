# tests/test_response_parser.py
import json
import pytest
from genrelay.core.errors import ParseError
from genrelay.providers.factory import get_dialect


def parse(profile, payload):
    raw = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    return get_dialect(profile).parse_response(profile, raw)


def test_openai_content_is_stripped_of_html(profiles):
    # Tests that markup in upstream content never reaches the client
    # and usage figures pass through.
    result = parse(profiles["openai"], {
        "choices": [{"message": {"role": "assistant", "content": "<b>hi</b>"}}],
        "usage": {"prompt_tokens": 3, "completion_tokens": 1, "total_tokens": 4},
    })
    assert result.content == "hi"
    assert result.usage.model_dump() == {"prompt_tokens": 3, "completion_tokens": 1, "total_tokens": 4}


def test_openai_missing_usage_defaults_to_zero(profiles):
    # Tests that an OpenAI-shaped response without usage reports zeros.
    result = parse(profiles["anthropic"], {"choices": [{"message": {"content": "ok"}}]})
    assert result.content == "ok"
    assert result.usage.total_tokens == 0


def test_openai_empty_choices_is_no_content(profiles):
    # Tests that an empty choices list fails with ParseError(no_content).
    with pytest.raises(ParseError) as exc:
        parse(profiles["openai"], {"choices": []})
    assert exc.value.reason == ParseError.NO_CONTENT


def test_malformed_body_is_parse_error(profiles):
    # Tests that a body that is not JSON fails with ParseError(malformed).
    with pytest.raises(ParseError) as exc:
        parse(profiles["openai"], b"<html>bad gateway</html>")
    assert exc.value.reason == ParseError.MALFORMED


def test_ollama_native_usage_from_eval_counts(profiles):
    # Tests the Ollama native parser: content from "response",
    # usage mapped from prompt_eval_count / eval_count with a summed total.
    result = parse(profiles["ollama"], {"response": "hello <i>there</i>", "prompt_eval_count": 7, "eval_count": 5, "done": True})
    assert result.content == "hello there"
    assert result.usage.model_dump(exclude_none=True) == {"prompt_tokens": 7, "completion_tokens": 5, "total_tokens": 12}


def test_ollama_native_usage_omitted_when_unknown(profiles):
    # Tests that usage fields Ollama did not report are omitted, not zeroed.
    result = parse(profiles["ollama"], {"response": "hi", "eval_count": 2})
    assert result.usage.model_dump(exclude_none=True) == {"completion_tokens": 2}


def test_ollama_native_empty_response_fails(profiles):
    # Tests that {"response": ""} is a ParseError.
    with pytest.raises(ParseError):
        parse(profiles["ollama"], {"response": ""})


def test_ollama_native_error_field(profiles):
    # Tests that an Ollama "error" field surfaces its message as a ParseError.
    with pytest.raises(ParseError) as exc:
        parse(profiles["ollama"], {"error": "model not loaded"})
    assert "model not loaded" in exc.value.message


def test_ollama_v1_uses_openai_parser(profiles):
    # Tests that Ollama in /v1 mode is parsed as an OpenAI-compatible response.
    result = parse(profiles["ollama_v1"], {"choices": [{"message": {"content": "compat"}}]})
    assert result.content == "compat"
    with pytest.raises(ParseError):
        parse(profiles["ollama_v1"], {"response": "native shape"})
