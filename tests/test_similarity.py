"""Tests for ticket_agent.steps.similarity module."""

from ticket_agent.models import Cost, ProjectState, Requirements, Ticket
from ticket_agent.steps.similarity import search_similar

from stubs import requirements_payload, ticket_payload


def _project(project_id, summary, features):
    return ProjectState(
        id=project_id,
        raw_text="brief",
        requirements=Requirements.from_dict(requirements_payload(projectName=project_id, summary=summary, features=features)),
        tickets=[Ticket.from_dict(ticket_payload("T-1"))],
        cost=Cost(),
        created_at="2026-01-01T00:00:00.000Z",
        updated_at="2026-01-01T00:00:00.000Z",
    )


class TestSearchSimilar:
    def test_empty_store_returns_empty(self, store):
        for _ in range(3):
            result = search_similar(store, "An appointment booking platform for clinics")
            assert result.ok
            assert result.value == []

    def test_match_needs_three_long_shared_words(self, store):
        store.persist(_project("alpha", "Online appointment booking for dental clinics", ["Patient reminders"]))
        result = search_similar(store, "appointment booking system for clinics and patients")
        assert result.ok
        assert len(result.value) == 1
        assert result.value[0].startswith('Similar project "alpha" had 1 tickets covering:')

    def test_two_shared_words_is_not_similar(self, store):
        store.persist(_project("beta", "Inventory tracking for warehouses", ["Barcode scanning"]))
        result = search_similar(store, "inventory tracking dashboard")
        assert result.value == []

    def test_at_most_two_suggestions(self, store):
        for name in ("p1", "p2", "p3"):
            store.persist(_project(name, "Online appointment booking for clinics", ["Patient reminders"]))
        result = search_similar(store, "appointment booking clinics patient")
        assert len(result.value) == 2

    def test_unreadable_files_are_skipped(self, store, settings):
        settings.data_dir.mkdir(parents=True)
        (settings.data_dir / "broken.json").write_text("{not json")
        result = search_similar(store, "appointment booking clinics patient")
        assert result.ok
        assert result.value == []
