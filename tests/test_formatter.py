"""
Tests for memory_vault.retrieval.formatter module.
"""


class TestFormatLines:
    def test_memory_line(self, make_memory):
        from memory_vault.retrieval.formatter import format_memory_line

        memory = make_memory(
            "Alice hid the key",
            importance=4,
            characters_involved=["Alice", "Bob"],
            location="the cellar",
            is_secret=True,
            known_by=["Alice"],
        )

        assert format_memory_line(memory) == (
            "- [4★] Alice hid the key (Alice, Bob; the cellar) [secret]"
        )

    def test_memory_line_minimal(self, make_memory):
        from memory_vault.retrieval.formatter import format_memory_line

        assert format_memory_line(make_memory("Rain", importance=2)) == "- [2★] Rain"
        assert format_memory_line(make_memory("Rain", location="Docks")) == "- [3★] Rain (Docks)"

    def test_relationship_line(self):
        from memory_vault.models.relationship import Relationship
        from memory_vault.retrieval.formatter import format_relationship_line

        rel = Relationship(character_a="Bob", character_b="Alice", trust_level=7.5)

        line = format_relationship_line(rel)

        assert line.startswith("- Alice & Bob (acquaintance): trust 7.5, tension 0")
        assert line.endswith("familiarity 1")


class TestRetrievalResult:
    """Tests for RetrievalResult rendering."""

    def test_empty_renders_nothing(self):
        from memory_vault.retrieval.formatter import RetrievalResult

        result = RetrievalResult()

        assert result.to_prompt_text() == ""
        assert len(result) == 0

    def test_story_order_and_sections(self, make_memory):
        from memory_vault.models.character import CharacterState
        from memory_vault.models.relationship import Relationship
        from memory_vault.retrieval.formatter import RetrievalResult

        late = make_memory("Bob returns", message_ids=[9])
        early = make_memory("Bob leaves", message_ids=[2])
        result = RetrievalResult(
            memories=[late, early],
            characters={"Bob": CharacterState(name="Bob", current_emotion="tired")},
            relationships=[Relationship(character_a="Alice", character_b="Bob")],
        )

        lines = result.to_prompt_text().split("\n")

        assert lines[0] == "[Memories]"
        assert lines[1:3] == ["- [3★] Bob leaves", "- [3★] Bob returns"]
        assert "[Emotional states]" in lines
        assert "- Bob: tired (intensity 5/10)" in lines
        assert lines[-2] == "[Relationships]"

    def test_to_dict(self, make_memory):
        from memory_vault.retrieval.formatter import RetrievalResult

        memory = make_memory("x", id="mem_a")
        result = RetrievalResult(memories=[memory], adjudicated=True)

        assert result.to_dict() == {
            "memory_ids": ["mem_a"],
            "characters": [],
            "relationships": [],
            "scores": [],
            "adjudicated": True,
        }
