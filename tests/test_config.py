import pytest

from codetutor import config
from codetutor.config import SUPPORTED_PYTHON_LIBS, load_settings

ENV_VARS = (
    "LANGUAGE_UNFAMILIARITY_THRESHOLD",
    "SAMPLE_INPUT_SUITE_IDS",
    "SUPPORTED_PYTHON_LIBS",
    "EXECUTION_TIMEOUT_SEC",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.setattr(config, "load_dotenv", lambda: False)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = load_settings()
    assert settings.language_unfamiliarity_threshold == 5
    assert settings.sample_input_suite_ids == frozenset({"SAMPLE_INPUT"})
    assert settings.supported_python_libs == tuple(SUPPORTED_PYTHON_LIBS)
    assert settings.execution_timeout_sec == 5.0
    assert settings.supported_libs_for("javascript") == ()


def test_overrides(monkeypatch):
    monkeypatch.setenv("LANGUAGE_UNFAMILIARITY_THRESHOLD", "3")
    monkeypatch.setenv("SAMPLE_INPUT_SUITE_IDS", "SAMPLE_INPUT, DEMO")
    monkeypatch.setenv("SUPPORTED_PYTHON_LIBS", "math,re")
    monkeypatch.setenv("EXECUTION_TIMEOUT_SEC", "1.5")
    settings = load_settings()
    assert settings.language_unfamiliarity_threshold == 3
    assert settings.sample_input_suite_ids == frozenset({"SAMPLE_INPUT", "DEMO"})
    assert settings.supported_libs_for("python") == ("math", "re")
    assert settings.execution_timeout_sec == 1.5


@pytest.mark.parametrize(
    "name, value",
    [
        ("LANGUAGE_UNFAMILIARITY_THRESHOLD", "0"),
        ("EXECUTION_TIMEOUT_SEC", "-1"),
        ("EXECUTION_TIMEOUT_SEC", "nan"),
    ],
)
def test_invalid_values_raise(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(RuntimeError):
        load_settings()


@pytest.mark.parametrize(
    "name, value",
    [
        ("LANGUAGE_UNFAMILIARITY_THRESHOLD", "five"),
        ("LANGUAGE_UNFAMILIARITY_THRESHOLD", "2.5"),
        ("EXECUTION_TIMEOUT_SEC", "soon"),
    ],
)
def test_non_numeric_values_raise_runtime_error(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(RuntimeError, match=name):
        load_settings()
