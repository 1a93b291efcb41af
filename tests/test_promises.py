"""
Tests for memory_vault.systems.promises module.
"""


class TestPromiseLifecycle:
    """Tests for creating promises and changing their status."""

    def test_create(self, vault):
        from memory_vault.systems.promises import create_promise

        promise = create_promise(
            vault, "Alice", "Bob", "I will return the sword", made_at_message=12, importance=9
        )

        assert promise.status == "pending"
        assert promise.importance == 5
        assert vault.promises[promise.id] is promise

    def test_status_transitions(self, vault):
        from memory_vault.systems.promises import (
            break_promise,
            create_promise,
            forgive_promise,
            fulfill_promise,
            get_unforgiven_broken_promises,
        )

        kept = create_promise(vault, "Alice", "Bob", "a")
        broken = create_promise(vault, "Bob", "Alice", "b")

        assert fulfill_promise(vault, kept.id) is True
        assert break_promise(vault, broken.id) is True
        assert kept.status == "fulfilled"
        assert get_unforgiven_broken_promises(vault) == [broken]

        forgive_promise(vault, broken.id)
        assert get_unforgiven_broken_promises(vault) == []
        assert broken.status_changed_at is not None

    def test_invalid_status(self, vault):
        from memory_vault.systems.promises import create_promise, update_promise_status

        promise = create_promise(vault, "Alice", "Bob", "a")

        assert update_promise_status(vault, promise.id, "sort_of") is False
        assert update_promise_status(vault, "missing", "broken") is False
        assert promise.status == "pending"

    def test_delete(self, vault):
        from memory_vault.systems.promises import create_promise, delete_promise

        promise = create_promise(vault, "Alice", "Bob", "a")

        assert delete_promise(vault, promise.id) is True
        assert delete_promise(vault, promise.id) is False


class TestPromiseQueries:
    """Tests for promise lookups."""

    def test_made_by_and_to(self, vault):
        from memory_vault.systems.promises import (
            create_promise,
            fulfill_promise,
            get_pending_promises_for,
            get_promises_between,
            get_promises_made_by,
            get_promises_made_to,
        )

        a = create_promise(vault, "Alice", "Bob", "a")
        b = create_promise(vault, "Bob", "Alice", "b")
        c = create_promise(vault, "Carol", "Alice", "c")
        fulfill_promise(vault, c.id)

        assert get_promises_made_by(vault, "Alice") == [a]
        assert get_promises_made_to(vault, "Alice") == [b, c]
        assert get_promises_made_to(vault, "Alice", "pending") == [b]
        assert get_pending_promises_for(vault, "Alice") == [a, b]
        assert get_promises_between(vault, "Bob", "Alice") == [a, b]

    def test_reminders(self, vault):
        from memory_vault.systems.promises import create_promise, get_promises_needing_reminder

        old = create_promise(vault, "Alice", "Bob", "a", made_at_message=5)
        create_promise(vault, "Alice", "Bob", "b", made_at_message=18)

        assert get_promises_needing_reminder(vault, 20) == [old]
        assert get_promises_needing_reminder(vault, 20, threshold=2) != []

    def test_summary(self, vault):
        from memory_vault.systems.promises import break_promise, create_promise, get_promises_summary

        create_promise(vault, "Alice", "Bob", "a")
        broken = create_promise(vault, "Alice", "Carol", "b")
        break_promise(vault, broken.id)

        summary = get_promises_summary(vault)

        assert summary["total"] == 2
        assert summary["by_status"]["pending"] == 1
        assert summary["by_status"]["broken"] == 1
        assert summary["made_by_character"] == {"Alice": 2}
        assert summary["received_by_character"] == {"Bob": 1, "Carol": 1}


class TestPromiseLanguage:
    def test_detect(self):
        from memory_vault.systems.promises import detect_promise_language

        found = detect_promise_language("I promise, and I SWEAR on my honor.")

        assert found == ["I promise", "I SWEAR", "on my honor"]
        assert detect_promise_language("Nice weather") == []
        assert detect_promise_language("") == []
