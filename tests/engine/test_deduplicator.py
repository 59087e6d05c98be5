from __future__ import annotations

from prompt_aggregator.engine import Deduplicator, fingerprint


def test_fingerprint_ignores_whitespace_layout() -> None:
    assert fingerprint("Act as  a\nguide ") == fingerprint("Act as a guide")
    assert fingerprint("Act as a guide") != fingerprint("Act as a tutor")


def test_duplicate_by_content_or_title(make_record) -> None:
    dedup = Deduplicator()
    corpus = [make_record()]

    same_body = make_record(id="other-1", title="Different", source_id="other")
    same_title = make_record(id="other-2", body="A completely different body text.")
    unrelated = make_record(id="other-3", title="Chef", body="Act as a chef.")

    assert dedup.is_duplicate(same_body, corpus)
    assert dedup.is_duplicate(same_title, corpus)
    assert not dedup.is_duplicate(unrelated, corpus)


def test_filter_new_is_idempotent(make_record) -> None:
    dedup = Deduplicator()
    batch = [
        make_record(id="example-json-0"),
        make_record(id="example-json-1", title="Chef", body="Act as a chef."),
    ]

    first = dedup.filter_new(batch, [])
    assert [record.id for record in first] == ["example-json-0", "example-json-1"]
    assert dedup.filter_new(batch, first) == []


def test_filter_new_drops_repeats_within_batch(make_record) -> None:
    dedup = Deduplicator()
    batch = [
        make_record(id="a-0"),
        make_record(id="a-1", title="Copy", body="Act as a  travel guide and suggest places to visit nearby."),
    ]
    assert [record.id for record in dedup.filter_new(batch, [])] == ["a-0"]


def test_reused_key_counts_as_known(make_record) -> None:
    dedup = Deduplicator()
    corpus = [make_record()]
    moved_up = make_record(title="Inserted", body="A brand new prompt placed above the others.")
    elsewhere = make_record(source_id="other", title="Inserted", body="Another brand new prompt.")

    assert dedup.is_duplicate(moved_up, corpus)
    assert not dedup.is_duplicate(elsewhere, corpus)
