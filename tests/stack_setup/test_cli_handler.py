import pytest

from stack_setup.cli_handler import make_prompt, prompt_yes_no
from stack_setup.config_models import AppSettings


@pytest.fixture
def interactive_settings():
    return AppSettings(assume_yes=False)


def _answers(*replies):
    replies = list(replies)

    def read(prompt_text):
        reply = replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    return read


@pytest.mark.parametrize(
    "reply, default, expected",
    [
        ("", True, True),
        ("", False, False),
        ("y", False, True),
        ("YES", False, True),
        ("n", True, False),
        (" No ", True, False),
    ],
)
def test_answers(interactive_settings, reply, default, expected):
    assert prompt_yes_no("Install Git?", default, interactive_settings, input_func=_answers(reply)) is expected


def test_invalid_answer_asks_again(interactive_settings, capsys):
    read = _answers("maybe", "y")

    assert prompt_yes_no("Install Git?", False, interactive_settings, input_func=read) is True
    assert "Please answer" in capsys.readouterr().out


def test_end_of_input_selects_default(interactive_settings):
    assert prompt_yes_no("Add PPA?", True, interactive_settings, input_func=_answers(EOFError())) is True
    assert prompt_yes_no("Add PPA?", False, interactive_settings, input_func=_answers(EOFError())) is False


def test_assume_yes_never_reads_input():
    settings = AppSettings(assume_yes=True)

    def read(prompt_text):
        raise AssertionError("prompted")

    assert prompt_yes_no("Install NGINX?", True, settings, input_func=read) is True
    assert prompt_yes_no("Remove data?", False, settings, input_func=read) is False


def test_prompt_shows_default_choice(interactive_settings):
    shown = []

    def read(prompt_text):
        shown.append(prompt_text)
        return ""

    prompt_yes_no("Install Ruby?", True, interactive_settings, input_func=read)
    prompt_yes_no("Install Ruby?", False, interactive_settings, input_func=read)

    assert shown[0].endswith("Install Ruby? [Y/n]: ")
    assert shown[1].endswith("Install Ruby? [y/N]: ")


def test_make_prompt_binds_settings(monkeypatch):
    monkeypatch.setattr("builtins.input", lambda prompt_text: "n")
    prompt = make_prompt(AppSettings(assume_yes=False))

    assert prompt("Install Docker?", True) is False
