"""Behaviour of a scan session across its lifecycle."""
from __future__ import annotations

import pytest

from conftest import Recorder, make_session, run_chunks
from multifinder import CaseMode, PatternSet, Session, SessionStateError


def test_earlier_pattern_wins_and_matches_do_not_overlap() -> None:
    _, recorder, total = run_chunks(["ab", "abc"], [b"xabcx"])

    assert total == 1
    assert recorder.matches == [(2, 0)]
    assert recorder.events == [
        ("flush", b"x"),
        ("match", (2, 0)),
        ("flush", b"cx"),
        ("flush", b""),
    ]


def test_later_registration_of_longer_pattern_does_not_take_priority() -> None:
    _, recorder, _ = run_chunks(["abc", "ab"], [b"xabcx"])

    assert recorder.matches == [(3, 0)]
    assert recorder.output == b"xx"


@pytest.mark.parametrize("text", [b"ab", b"Ab", b"aB", b"AB"])
def test_case_insensitive_pattern_matches_any_case(text: bytes) -> None:
    _, recorder, total = run_chunks([("AB", CaseMode.INSENSITIVE)], [text])

    assert total == 1
    assert recorder.matches == [(2, 0)]
    assert recorder.output == b""


def test_case_insensitive_pattern_rejects_different_letters() -> None:
    _, recorder, total = run_chunks([("AB", CaseMode.INSENSITIVE)], [b"ac"])

    assert total == 0
    assert recorder.output == b"ac"


def test_case_sensitive_pattern_requires_exact_bytes() -> None:
    _, recorder, total = run_chunks(["AB"], [b"ab AB"])

    assert total == 1
    assert recorder.output == b"ab "


def test_case_folding_leaves_non_ascii_bytes_alone() -> None:
    _, recorder, total = run_chunks([("ÉTÉ".encode("latin-1"), CaseMode.INSENSITIVE)], [b"\xe9t\xe9 \xc9t\xc9"])

    assert total == 1
    assert recorder.output == b"\xe9t\xe9 "


def test_match_split_across_submits() -> None:
    session, recorder = make_session(["hello"])

    assert session.submit(b"hel") == 0
    assert session.submit(b"lo") == 1
    assert session.finalize() == 0
    assert recorder.matches == [(5, 0)]
    assert recorder.output == b""
    assert recorder.flushes == [b""]


def test_abort_stops_matching_and_is_sticky() -> None:
    session, recorder = make_session(["x"], abort_on={0: 7})

    assert session.submit(b"axbxc") == 1
    assert session.aborted == 7
    assert session.submit(b"xxx") == 0
    assert session.finalize() == 0

    assert recorder.matches == [(1, 0)]
    assert recorder.events == [("flush", b"a"), ("match", (1, 0)), ("flush", b"")]
    assert session.stream_position == 8
    assert session.position == 2


def test_abort_during_finalize() -> None:
    session, recorder = make_session(["xy", "z"], abort_on={1: 3})

    session.submit(b"az")
    assert session.finalize() == 1
    assert session.aborted == 3
    assert recorder.events == [("flush", b"a"), ("match", (1, 1)), ("flush", b"")]


def test_pass_through_without_patterns() -> None:
    session, recorder = make_session([])

    session.submit(b"hello ")
    session.submit(b"world")
    session.finalize()

    assert recorder.matches == []
    assert recorder.output == b"hello world"
    assert recorder.flushes[-1] == b""
    assert recorder.flushes.count(b"") == 1


def test_match_callback_without_flush_callback_still_tracks_position() -> None:
    seen: list[int] = []
    session = Session(on_match=lambda s, length, tag: seen.append(length))
    session.add_pattern(b"needle")

    session.submit(b"hay needle hay")
    assert session.position == 4 + 6
    session.finalize()

    assert seen == [6]
    assert session.position == 14


def test_session_without_callbacks_counts_matches() -> None:
    session = Session()
    session.add_pattern("aa")

    assert session.submit(b"aaaaa") == 2
    assert session.finalize() == 0
    assert session.position == 5


def test_short_pattern_at_stream_end_is_found_in_finalize() -> None:
    session, recorder = make_session(["longpattern", "end"])

    assert session.submit(b"the end") == 0
    assert session.finalize() == 1
    assert recorder.events == [("flush", b"the "), ("match", (3, 1)), ("flush", b"")]


def test_finalize_matches_advance_by_pattern_length() -> None:
    _, recorder, total = run_chunks(["abcdef", "ab"], [b"ababab"])

    assert total == 3
    assert recorder.matches == [(2, 1), (2, 1), (2, 1)]
    assert recorder.output == b""


def test_position_never_exceeds_stream_position() -> None:
    session, _ = make_session(["abcd"])

    for chunk in (b"ab", b"c", b"xyzab", b"cd", b"q"):
        session.submit(chunk)
        assert session.position <= session.stream_position
    session.finalize()
    assert session.position == session.stream_position


def test_empty_chunks_are_accepted() -> None:
    session, recorder = make_session(["ab"])

    assert session.submit(b"") == 0
    session.submit(b"a")
    session.submit(b"")
    session.submit(b"b")
    session.finalize()

    assert recorder.matches == [(2, 0)]


def test_bytes_like_chunks() -> None:
    session, recorder = make_session(["ab"])

    session.submit(bytearray(b"xa"))
    session.submit(memoryview(b"bx"))
    session.finalize()

    assert recorder.matches == [(2, 0)]
    assert recorder.output == b"xx"


def test_text_chunk_is_rejected() -> None:
    session, _ = make_session(["ab"])

    with pytest.raises(TypeError):
        session.submit("ab")  # type: ignore[arg-type]


def test_submit_after_finalize_requires_reset() -> None:
    session, _ = make_session(["ab"])
    session.submit(b"ab")
    session.finalize()

    with pytest.raises(SessionStateError):
        session.submit(b"ab")
    with pytest.raises(SessionStateError):
        session.finalize()


def test_reset_allows_reuse_with_same_patterns() -> None:
    session, recorder = make_session(["x"], abort_on={0: 1})

    session.submit(b"axa")
    assert session.aborted == 1
    session.reset()

    assert session.aborted == 0
    assert session.position == 0
    assert session.stream_position == 0
    assert session.pattern_count() == 1

    recorder.abort_on.clear()
    recorder.events.clear()
    session.submit(b"bxbx")
    session.finalize()
    assert recorder.matches == [(1, 0), (1, 0)]
    assert recorder.output == b"bb"


def test_reset_mid_stream_discards_buffered_bytes() -> None:
    session, recorder = make_session(["hello"])

    session.submit(b"hel")
    session.reset()
    session.submit(b"lo")
    session.finalize()

    assert recorder.matches == []
    assert recorder.output == b"lo"


def test_reentrant_calls_from_callbacks_are_rejected() -> None:
    errors: list[Exception] = []

    def on_match(session: Session, length: int, tag: object) -> int:
        for call in (lambda: session.submit(b"x"), session.reset, session.finalize):
            try:
                call()
            except SessionStateError as exc:
                errors.append(exc)
        return 0

    session = Session(on_match=on_match)
    session.add_pattern(b"a")
    session.submit(b"a")

    assert len(errors) == 3


def test_callback_returning_none_continues() -> None:
    seen: list[object] = []
    session = Session(on_match=lambda s, length, tag: seen.append(tag))
    session.add_pattern(b"a", tag="first")

    session.submit(b"aba")
    session.finalize()

    assert seen == ["first", "first"]
    assert session.aborted == 0


def test_match_callback_receives_session() -> None:
    received: list[Session] = []
    session = Session(on_match=lambda s, length, tag: received.append(s))
    session.add_pattern(b"a")
    session.submit(b"a")

    assert received == [session]


def test_identical_patterns_fire_first_registration() -> None:
    _, recorder, _ = run_chunks(["dup", "dup"], [b"dup dup"])

    assert recorder.matches == [(3, 0), (3, 0)]


def test_empty_and_missing_patterns_are_ignored() -> None:
    session = Session()
    assert session.add_pattern(b"") is None
    assert session.add_pattern(None) is None
    session.add_pattern(b"ok")

    assert session.pattern_count() == 1


def test_owned_pattern_registration() -> None:
    recorder = Recorder()
    session = Session(on_match=recorder.on_match, on_flush=recorder.on_flush)
    buffer = bytearray(b"needle-and-more")
    session.add_owned_pattern(buffer, 6, tag="n")
    session.add_owned_pattern(bytearray(b"HAY"), case=CaseMode.INSENSITIVE, tag="h")

    session.submit(b"hay needle")
    session.finalize()

    assert recorder.matches == [(3, "h"), (6, "n")]
    assert recorder.output == b" "


def test_shared_pattern_set_between_sessions() -> None:
    patterns = PatternSet()
    patterns.add(b"cat", tag="c")
    first = Recorder()
    second = Recorder()
    one = Session(first.on_match, first.on_flush, patterns=patterns)
    two = Session(second.on_match, second.on_flush, patterns=patterns)

    one.submit(b"a cat")
    two.submit(b"no dogs")
    one.finalize()
    two.finalize()

    assert first.matches == [(3, "c")]
    assert second.matches == []
    assert second.output == b"no dogs"


def test_patterns_added_between_submits_grow_the_window() -> None:
    session, recorder = make_session(["ab"])

    session.submit(b"xx")
    session.add_pattern(b"longer", tag="l")
    session.submit(b"lon")
    session.submit(b"ger ab")
    session.finalize()

    assert recorder.matches == [(6, "l"), (2, 0)]
    assert recorder.output == b"xx "
