import json

import pytest
from google.api_core import exceptions

from banana_pro.analyzer import AnalysisError, VisualAnalyzer, describe_api_error, is_retryable_error
from banana_pro.analyzer import gemini_client
from banana_pro.payload import AnalysisResult

K1 = "AIzaSyAAAAAAAAAAAAAAAAAAAAAAAAAAAAA1"
K2 = "AIzaSyBBBBBBBBBBBBBBBBBBBBBBBBBBBBB2"


class FakeResponse:
    def __init__(self, text):
        self.text = text


class BlockedResponse:
    prompt_feedback = "block_reason: SAFETY"

    @property
    def text(self):
        raise ValueError("response blocked")


class FakeGenai:
    """替代 google.generativeai：responder(contents, generation_config, api_key) 决定返回值"""

    def __init__(self, responder):
        self.responder = responder
        self.api_key = None
        self.calls = []

    def configure(self, api_key):
        self.api_key = api_key

    def GenerativeModel(self, model_name):
        return FakeModel(self, model_name)


class FakeModel:
    def __init__(self, owner, model_name):
        self.owner = owner
        self.model_name = model_name

    def generate_content(self, contents, generation_config=None):
        self.owner.calls.append({
            "contents": contents,
            "generation_config": generation_config,
            "api_key": self.owner.api_key,
            "model": self.model_name,
        })
        result = self.owner.responder(contents, generation_config, self.owner.api_key)
        if isinstance(result, Exception):
            raise result
        if isinstance(result, str):
            return FakeResponse(result)
        return result


def scripted(*items):
    queue = list(items)
    return lambda contents, config, api_key: queue.pop(0)


@pytest.fixture
def sleeps(monkeypatch):
    recorded = []
    monkeypatch.setattr(gemini_client.time, "sleep", recorded.append)
    return recorded


@pytest.fixture
def install(monkeypatch):
    def _install(responder):
        fake = FakeGenai(responder)
        monkeypatch.setattr(gemini_client, "genai", fake)
        return fake
    return _install


ANALYSIS_JSON = json.dumps({
    "style": {"en": "modern", "vi": "hiện đại"},
    "lighting": {"en": "dawn", "vi": "bình minh"},
    "generationPrompt": {"en": "a castle", "vi": "lâu đài"},
})


def test_analyze_sends_images_then_prompt(install, image_file):
    fake = install(scripted(ANALYSIS_JSON))
    analyzer = VisualAnalyzer(key_source=[K1])
    result = analyzer.analyze([image_file("ref.png")])

    assert isinstance(result, AnalysisResult)
    assert result.get_en("generationPrompt") == "a castle"
    call = fake.calls[0]
    assert call["model"] == "gemini-3-flash-preview"
    assert call["api_key"] == K1
    assert call["generation_config"] == {"response_mime_type": "application/json"}
    assert len(call["contents"]) == 2
    assert call["contents"][0].size == (8, 6)
    assert call["contents"][-1].startswith("Role: Architectural Photographer")
    assert "sketchPrompt" not in call["contents"][-1]


def test_analyze_with_sketch(install, image_file):
    fake = install(scripted(ANALYSIS_JSON))
    analyzer = VisualAnalyzer(key_source=[K1])
    analyzer.analyze([image_file("ref.png")], sketch_path=image_file("sketch.png"))
    contents = fake.calls[0]["contents"]
    assert len(contents) == 3
    assert "sketchPrompt" in contents[-1]


def test_analyze_requires_input(install):
    install(scripted())
    with pytest.raises(ValueError):
        VisualAnalyzer(key_source=[K1]).analyze([])


def test_quota_errors_are_retried_with_backoff(install, sleeps):
    install(scripted(
        exceptions.ResourceExhausted("429 RESOURCE_EXHAUSTED"),
        exceptions.ResourceExhausted("429 RESOURCE_EXHAUSTED"),
        '{"analysis": "dna"}',
    ))
    analyzer = VisualAnalyzer(key_source=[K1])
    assert analyzer.object_dna([]) == "dna"
    assert sleeps == [1.0, 2.0]
    assert analyzer.get_stats()["retries"] == 2


def test_overload_gives_up_after_max_retries(install, sleeps):
    fake = install(lambda *a: exceptions.ServiceUnavailable("model overloaded"))
    analyzer = VisualAnalyzer(key_source=[K1], max_retries=3)
    ok, reason, text = analyzer.call_gemini("hi")
    assert not ok and text is None
    assert reason.startswith("Server overloaded (503)")
    assert sleeps == [1.0, 2.0, 4.0]
    assert len(fake.calls) == 4
    assert analyzer.get_stats()["failed_requests"] == 1


def test_bad_key_is_switched(install):
    def responder(contents, config, api_key):
        if api_key == K1:
            return exceptions.PermissionDenied("API key not valid")
        return '{"en": {"title": "Front"}, "vi": {"title": "Trước"}}'

    fake = install(responder)
    analyzer = VisualAnalyzer(key_source=[K1, K2])
    angle = analyzer.custom_angle([], "front view")
    assert angle["en"]["title"] == "Front"
    assert [c["api_key"] for c in fake.calls] == [K1, K2]
    assert analyzer.get_stats()["key_switches"] == 1


def test_all_keys_failed(install):
    install(lambda *a: exceptions.PermissionDenied("API key not valid"))
    analyzer = VisualAnalyzer(key_source=[K1])
    ok, reason, _ = analyzer.call_gemini("hi")
    assert not ok
    assert "Error" in reason or "所有API Key都已失效" in reason
    ok, reason, _ = analyzer.call_gemini("hi again")
    assert reason.startswith("所有API Key都已失效")


def test_blocked_response(install):
    install(scripted(BlockedResponse()))
    analyzer = VisualAnalyzer(key_source=[K1])
    ok, reason, _ = analyzer.call_gemini("hi")
    assert not ok
    assert reason.startswith("被安全策略阻止")


def test_invalid_json_raises(install):
    install(scripted("not json", "[1]"))
    analyzer = VisualAnalyzer(key_source=[K1])
    with pytest.raises(AnalysisError):
        analyzer.call_json("x")
    with pytest.raises(AnalysisError):
        analyzer.call_json("x")


def test_empty_json_response_defaults_to_object(install):
    install(scripted(""))
    assert VisualAnalyzer(key_source=[K1]).call_json("x") == {}


def test_analyze_field_updates_analysis(install):
    install(scripted('{"lighting": {"en": "noon", "vi": "trưa"}}'))
    analysis = AnalysisResult.from_dict({"lighting": {"en": "dawn", "vi": "bình minh"}})
    value = VisualAnalyzer(key_source=[K1]).analyze_field([], "lighting", analysis)
    assert value.en == "noon"
    assert analysis["lighting"].vi == "trưa"


def test_multi_view(install):
    views = {"multiViewPrompts": {
        "en": [{"angle": "Front", "content": "c", "composition": "p", "lighting": "l"}],
        "vi": [{"angle": "Trước", "content": "c", "composition": "p", "lighting": "l"}],
    }}
    fake = install(scripted(json.dumps(views)))
    analysis = AnalysisResult()
    value = VisualAnalyzer(key_source=[K1]).multi_view([], count=2, analysis=analysis)
    assert value.en.startswith("===ANGLE: Front===")
    assert analysis["multiViewPrompts"].vi.startswith("===ANGLE: Trước===")
    assert "Generate 2 distinct camera angle prompts" in fake.calls[0]["contents"][-1]


def test_custom_angle_requires_request(install):
    install(scripted())
    with pytest.raises(ValueError):
        VisualAnalyzer(key_source=[K1]).custom_angle([], "  ")


def test_object_dna_defaults(install):
    fake = install(scripted("{}"))
    assert VisualAnalyzer(key_source=[K1]).object_dna([], lang="vi") == "No result."
    assert "VIETNAMESE" in fake.calls[0]["contents"][-1]


def test_extract_notes_keeps_order_and_isolates_errors(install, image_file):
    def responder(contents, config, api_key):
        if contents[0].mode == "L":
            return ValueError("unreadable")
        return '{"vi": "ghi chú", "en": ""}'

    install(responder)
    good = image_file("good.png")
    bad = image_file("bad.png", mode="L")
    notes = VisualAnalyzer(key_source=[K1]).extract_notes([good, bad, good])
    assert [n["file"] for n in notes] == [good, bad, good]
    assert notes[0] == {"file": good, "vi": "ghi chú", "en": "No text detected"}
    assert notes[1]["vi"] == "Error processing"
    assert VisualAnalyzer(key_source=[K1]).extract_notes([]) == []


def test_translate_uses_plain_text(install):
    fake = install(scripted("Xin chào"))
    assert VisualAnalyzer(key_source=[K1]).translate(" Hello ") == "Xin chào"
    assert fake.calls[0]["generation_config"] is None
    assert fake.calls[0]["contents"][-1].endswith("Text: Hello")
    assert VisualAnalyzer(key_source=[K1]).translate("   ") == ""


def test_key_sources(monkeypatch, tmp_path, install):
    install(scripted())
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("API_KEY", K1)
    assert VisualAnalyzer().key_manager.get_current_key() == K1

    monkeypatch.delenv("API_KEY")
    keys_dir = tmp_path / "keys"
    keys_dir.mkdir()
    (keys_dir / "api_keys_1.txt").write_text(K2 + "\n", encoding="utf-8")
    monkeypatch.setenv("BANANA_PRO_KEYS_DIR", str(keys_dir))
    assert VisualAnalyzer().key_manager.get_current_key() == K2

    key_file = tmp_path / "my_keys.txt"
    key_file.write_text(f"# comment\n{K1}\n", encoding="utf-8")
    assert VisualAnalyzer(key_source=str(key_file)).key_manager.get_total_keys() == 1
    assert VisualAnalyzer(key_source=K2).key_manager.get_current_key() == K2

    monkeypatch.setenv("BANANA_PRO_KEYS_DIR", str(tmp_path / "missing"))
    with pytest.raises(RuntimeError):
        VisualAnalyzer()
    with pytest.raises(RuntimeError):
        VisualAnalyzer(key_source=[])
    with pytest.raises(ValueError):
        VisualAnalyzer(key_source="what-is-this")


def test_error_helpers():
    assert is_retryable_error(exceptions.ResourceExhausted("x"))
    assert is_retryable_error(RuntimeError("HTTP 503 overloaded"))
    assert not is_retryable_error(ValueError("bad"))
    assert describe_api_error(RuntimeError("quota hit")).startswith("Quota exceeded (429)")
    assert describe_api_error(RuntimeError("model is overloaded")).startswith("Server overloaded")
    assert describe_api_error(RuntimeError("x" * 50)) == "Error: " + "x" * 40 + "..."
    assert describe_api_error(RuntimeError(""), "Translation failed") == "Translation failed"
