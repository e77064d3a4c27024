import io
import re

import pytest

from unintel.visual import VisualOutput, WorkflowState, truncate_uuid, wrap_line

_ANSI = re.compile(r"\x1b\[[0-9;]*m")


def _output():
    stream = io.StringIO()
    return VisualOutput(stream), stream


def _plain(stream):
    return _ANSI.sub("", stream.getvalue())


def test_thought_start_format():
    out, stream = _output()
    out.thought_start(1, 5)
    assert _plain(stream) == "🧠 Thought 1/5:\n"


def test_thought_content_short_lines_are_indented():
    out, stream = _output()
    out.thought_content("alpha\nbeta\n")
    assert _plain(stream).splitlines() == ["   alpha", "   beta"]


def test_wrap_line_keeps_short_line():
    assert wrap_line("short line") == ["short line"]


def test_wrap_line_preserves_words_and_width():
    line = " ".join(f"word{n}" for n in range(60))
    pieces = wrap_line(line)
    assert len(pieces) > 1
    assert all(len(p) < 80 for p in pieces)
    assert " ".join(pieces) == line


def test_wrap_line_single_long_word_kept_whole():
    word = "x" * 100
    assert wrap_line(word) == [word]


def test_thought_content_wraps_long_line():
    out, stream = _output()
    line = " ".join(["lorem"] * 40)
    out.thought_content(line)
    lines = _plain(stream).splitlines()
    assert len(lines) > 1
    assert all(l.startswith("   ") for l in lines)
    assert " ".join(l.strip() for l in lines) == line


def test_framework_state_with_note():
    out, stream = _output()
    out.framework_state(WorkflowState.CONVERSATION)
    assert _plain(stream) == "   🗒 conversation (read-only; focus on capturing)\n"


def test_framework_state_without_note():
    out, stream = _output()
    out.framework_state(WorkflowState.DEBUG)
    assert _plain(stream) == "   🛠 debug\n"


def test_truncate_uuid():
    uid = "550e8400-e29b-41d4-a716-446655440000"
    assert truncate_uuid(uid) == uid[:8] + "..."
    assert truncate_uuid("abc") == "abc"


def test_chain_info_new_and_existing():
    uid = "550e8400-e29b-41d4-a716-446655440000"
    out, stream = _output()
    out.chain_info(uid, True)
    out.chain_info(uid, False)
    lines = _plain(stream).splitlines()
    assert lines[0].endswith("New chain: " + truncate_uuid(uid))
    assert lines[1].endswith("Chain: " + truncate_uuid(uid))
    assert "New" not in lines[1]


def test_thought_stored():
    out, stream = _output()
    out.thought_stored("abcdef123456")
    assert _plain(stream).strip().endswith("Stored: " + truncate_uuid("abcdef123456"))


def test_search_results_found_and_empty():
    out, stream = _output()
    out.search_results(3, "rust")
    out.search_results(0, "rust")
    lines = _plain(stream).splitlines()
    assert lines[0] == "🔍 Found 3 thoughts for: rust"
    assert lines[1] == "🔍 No thoughts found for: rust"


def test_thinking_complete():
    out, stream = _output()
    out.thinking_complete()
    assert _plain(stream) == "   🎯 Thinking complete\n"


def test_next_thought_indicator():
    out, stream = _output()
    out.next_thought_indicator(False)
    assert _plain(stream) == ""
    out.next_thought_indicator(True)
    assert "Next thought needed..." in _plain(stream)


def test_progress_bar_half():
    out, stream = _output()
    out.progress_bar(10, 20)
    text = _plain(stream)
    assert text.count("█") == 10
    assert text.count("░") == 10
    assert text.strip().endswith("10/20")


def test_progress_bar_full_width_is_constant():
    out, stream = _output()
    out.progress_bar(3, 7)
    text = _plain(stream)
    assert text.count("█") + text.count("░") == 20


def test_progress_bar_rejects_overflow():
    out, _ = _output()
    with pytest.raises(ValueError):
        out.progress_bar(6, 5)