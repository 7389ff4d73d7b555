"""Tests for smart learning from successful tool use."""

import json

import pytest

from aurafrog.learning.smart_learn import (
    BASH_PATTERN_THRESHOLD,
    CODE_PATTERN_THRESHOLD,
    SmartLearnCache,
    SmartLearner,
    detect_code_patterns,
    extract_bash_pattern,
    is_failure,
    is_tracked_command,
)
from aurafrog.learning.store import LocalFileStore

pytestmark = pytest.mark.learning

TS_COMPONENT = """
const Button = async ({ label }: { label: string }) => {
  const [count, setCount] = useState(0);
  try {
    await save(label);
  } catch (e) {}
};
"""

PY_MODULE = """
async def fetch(url) -> bytes:
    ...

def parse(data) -> dict:
    ...

def render(value) -> str:
    ...
"""


class TestDetectCodePatterns:

    def test_typescript(self):
        names = {p["pattern"] for p in detect_code_patterns(TS_COMPONENT, "src/Button.tsx")}
        assert {"arrow_functions", "prefer_const", "async_await",
                "react_hooks", "error_handling"} <= names
        assert "explicit_types" not in names

    def test_explicit_types_threshold(self):
        content = "let a: string; let b: number; let c: boolean; let d: any; let e: object; let f: Array<string>;"
        names = {p["pattern"] for p in detect_code_patterns(content, "types.ts")}
        assert "explicit_types" in names

    def test_python(self):
        patterns = detect_code_patterns(PY_MODULE, "app/module.py")
        assert {p["pattern"] for p in patterns} == {"python_type_hints", "python_async"}

    def test_unknown_extension(self):
        assert detect_code_patterns("const x = 1", "notes.txt") == []


class TestBashPatterns:

    def test_normalization(self):
        pattern = extract_bash_pattern('git commit -m "fix 42 things" && git push')
        assert pattern["base"] == "git"
        assert pattern["pattern"] == 'git commit -m "" && git push'
        assert pattern["has_chain"] is True
        assert pattern["has_pipe"] is False

    def test_digits_replaced(self):
        assert extract_bash_pattern("sleep 30")["pattern"] == "sleep N"

    def test_empty(self):
        assert extract_bash_pattern("   ") is None

    @pytest.mark.parametrize("command", ["cd src", "ls -la", "echo hi", "cat file.txt", ""])
    def test_ignored_commands(self, command):
        assert not is_tracked_command(command)

    def test_failure_markers(self):
        assert is_failure("Error: ENOENT")
        assert is_failure("3 tests FAILED")
        assert not is_failure("all good")


class TestSmartLearner:

    @pytest.fixture
    def learner(self, config):
        return SmartLearner(config, store=LocalFileStore(config))

    def test_code_pattern_promoted_at_threshold(self, learner, config):
        notices = []
        for i in range(CODE_PATTERN_THRESHOLD):
            notices = learner.observe("Write", {"file_path": f"app/m{i}.py", "content": PY_MODULE})

        assert any("python_type_hints" in n for n in notices)
        patterns = json.loads(config.patterns_path.read_text())
        descriptions = {p["description"] for p in patterns}
        assert "Prefer python type hints in .py files" in descriptions
        assert all(p["pattern_type"] == "code_style" for p in patterns)

        cache = SmartLearnCache.load(config.smart_learn_cache_path)
        assert cache.file_patterns[".py"]["patterns"]["typing:python_type_hints"]["count"] == 0
        assert cache.file_patterns[".py"]["successCount"] == CODE_PATTERN_THRESHOLD

    def test_below_threshold_silent(self, learner, config):
        assert learner.observe("Edit", {"file_path": "a.py", "new_string": PY_MODULE}) == []
        assert not config.patterns_path.exists()

    def test_bash_pattern_promoted(self, learner, config):
        notices = []
        for _ in range(BASH_PATTERN_THRESHOLD):
            notices = learner.observe("Bash", {"command": "pytest -q tests/"})
        assert notices == ['\U0001f9e0 Smart Learn: Bash pattern! "pytest" is frequently used']
        pattern = json.loads(config.patterns_path.read_text())[0]
        assert pattern["category"] == "bash"
        assert pattern["description"] == "Commonly used command: pytest"

    def test_failed_tool_ignored(self, learner, config):
        assert learner.observe("Bash", {"command": "make"}, "make: *** Error: 2") == []
        assert not config.smart_learn_cache_path.exists()

    def test_ignored_command(self, learner, config):
        assert learner.observe("Bash", {"command": "ls -la"}) == []
        assert not config.smart_learn_cache_path.exists()

    def test_actions_capped(self, learner, config):
        for _ in range(210):
            learner.observe("Write", {"file_path": "notes.txt", "content": "hello"})
        cache = SmartLearnCache.load(config.smart_learn_cache_path)
        assert len(cache.actions) == 200

    def test_metrics_disabled(self, make_config):
        config = make_config(AF_METRICS_COLLECTION="false")
        learner = SmartLearner(config, store=LocalFileStore(config))
        assert not learner.active
        assert learner.observe("Bash", {"command": "pytest"}) == []
        assert not config.smart_learn_cache_path.exists()
