"""
Tests for memory_vault.session module.
"""

from unittest.mock import AsyncMock, MagicMock


def _state(chat, conversation_id="chat-1"):
    from memory_vault.conversation import ConversationState

    return ConversationState(
        conversation_id=conversation_id, chat=chat, character_name="Alice", user_name="User"
    )


def _session(settings, **kwargs):
    from memory_vault.session import VaultSession

    kwargs.setdefault("notify", MagicMock())
    return VaultSession(settings, **kwargs)


class TestLoading:
    """Tests for loading and corrupted vaults."""

    def test_load_valid(self, settings, make_chat):
        session = _session(settings)

        assert session.load(_state(make_chat(4)), {"memories": []}) is True
        assert session.is_enabled
        assert session.conversation_id == "chat-1"

    def test_corrupted_disables(self, settings, make_chat):
        session = _session(settings)

        assert session.load(_state(make_chat(4)), {"memories": "broken"}) is False
        assert not session.is_enabled
        assert "memories" in session.disabled_reason
        session._notify.assert_called_once()
        assert session._notify.call_args.args[0] == "error"

    async def test_disabled_session_is_inert(self, settings, make_chat):
        extractor = AsyncMock(return_value="[]")
        session = _session(settings, extractor=extractor)
        session.load(_state(make_chat(4)), ["not", "a", "vault"])

        result = await session.retrieve()
        report = await session.extract_backlog()

        assert len(result) == 0
        assert report.batches == 0
        extractor.assert_not_awaited()

    async def test_reinitialize(self, settings, make_chat):
        save = AsyncMock()
        session = _session(settings, save_callback=save)
        session.load(_state(make_chat(4)), 42)

        assert await session.reinitialize() is True
        assert session.is_enabled
        save.assert_awaited_once()
        assert save.await_args.args[0] == "chat-1"
        assert save.await_args.args[1]["memories"] == []

    async def test_reinitialize_without_conversation(self, settings):
        assert await _session(settings).reinitialize() is False

    def test_feature_flag(self, settings, make_chat):
        settings.enabled = False
        session = _session(settings)
        session.load(_state(make_chat(4)), None)

        assert not session.is_enabled


class TestSaving:
    """Tests for persistence through the host callback."""

    async def test_sync_callback(self, settings, make_chat):
        saved = {}
        session = _session(settings, save_callback=lambda cid, data: saved.update({cid: data}))
        session.load(_state(make_chat(2)), None)

        assert await session.save() is True
        assert "chat-1" in saved

    async def test_failed_save_is_retried(self, settings, make_chat):
        save = AsyncMock(side_effect=[OSError("disk full"), None])
        session = _session(settings, save_callback=save)
        session.load(_state(make_chat(2)), None)

        assert await session.save() is False
        assert session.save_pending is True
        assert session._notify.call_args.args[0] == "warning"

        await session.retrieve()

        assert session.save_pending is False
        assert save.await_count == 2


class TestExtraction:
    """Tests for backlog extraction through the session."""

    async def test_extract_then_save(self, settings, make_chat):
        save = AsyncMock()
        extractor = AsyncMock(return_value='[{"summary": "Alice greets User"}]')
        session = _session(settings, extractor=extractor, save_callback=save)
        session.load(_state(make_chat(12)), None)

        report = await session.extract_backlog()

        assert report.batches == 2
        assert len(session.vault.memories) == 2
        assert session.vault.last_processed_message_id == 11
        save.assert_awaited()

    async def test_auto_hide_after_extraction(self, settings, make_chat):
        settings.auto_hide_enabled = True
        settings.auto_hide_threshold = 10
        settings.extraction_batch_size = 20
        chat = make_chat(20)
        session = _session(settings, extractor=AsyncMock(return_value='{"summary": "talk"}'))
        session.load(_state(chat), None)

        await session.extract_backlog()

        assert sum(1 for m in chat if m["is_system"]) == 10

    async def test_extraction_failure_notifies(self, settings, make_chat):
        session = _session(settings, extractor=AsyncMock(side_effect=RuntimeError("down")))
        session.load(_state(make_chat(4)), None)

        report = await session.extract_backlog()

        assert report.failed is True
        assert session._notify.call_args.args[0] == "warning"
        assert session.vault.last_processed_message_id == -1

    async def test_embedding_failure_notifies_and_retries(self, settings, make_chat):
        save = AsyncMock()
        embedder = AsyncMock(side_effect=[TimeoutError("slow"), [0.2, 0.8]])
        session = _session(
            settings,
            extractor=AsyncMock(return_value='[{"summary": "Alice waves"}]'),
            embedder=embedder,
            save_callback=save,
        )
        session.load(_state(make_chat(4)), None)

        first = await session.extract_backlog()

        assert first.embedding_failures == 1
        level, message = session._notify.call_args.args
        assert level == "warning"
        assert "embed" in message

        save.reset_mock()
        second = await session.extract_backlog()

        assert second.batches == 0
        assert second.embedded == 1
        assert session.vault.memories[0].embedding == [0.2, 0.8]
        save.assert_awaited()

    async def test_no_extractor(self, settings, make_chat):
        session = _session(settings)
        session.load(_state(make_chat(4)), None)

        report = await session.extract_backlog()

        assert report.batches == 0


class TestRetrieval:
    async def test_retrieve_uses_active_vault(self, settings, make_chat, make_memory):
        chat = make_chat(4)
        chat[-1]["mes"] = "Where is the cellar key?"
        session = _session(settings)
        session.load(_state(chat), None)
        memory = make_memory("The cellar key is under the mat")
        session.vault.add_memory(memory)

        result = await session.retrieve()

        assert result.memories == [memory]

    async def test_retrieve_before_load(self, settings):
        result = await _session(settings).retrieve()

        assert len(result) == 0


class TestChatChanged:
    """Tests for on_chat_changed and conversation switching."""

    async def test_switch_loads_new_vault(self, settings, make_chat):
        session = _session(settings)
        session.load(_state(make_chat(4)), None)
        data = {
            "memories": [{"id": "mem_b", "summary": "In chat two", "message_ids": [1]}],
            "last_processed_message_id": 3,
        }

        await session.on_chat_changed(_state(make_chat(4), "chat-2"), data)
        await session.reconciler.pending

        assert session.conversation_id == "chat-2"
        assert [m.id for m in session.vault.memories] == ["mem_b"]

    async def test_branch_switch_prunes_and_saves(self, settings, make_chat, make_memory):
        save = AsyncMock()
        session = _session(settings, save_callback=save)
        session.load(_state(make_chat(10)), None)
        session.vault.add_memory(make_memory("early", message_ids=[1]))
        session.vault.add_memory(make_memory("late", message_ids=[8]))

        result = await session.on_chat_changed(_state(make_chat(5)))
        await session.reconciler.pending

        assert result.count == 1
        assert [m.summary for m in session.vault.memories] == ["early"]
        save.assert_awaited_once()

    async def test_switch_to_corrupted_vault(self, settings, make_chat):
        session = _session(settings)
        session.load(_state(make_chat(4)), None)

        result = await session.on_chat_changed(_state(make_chat(4), "chat-2"), "garbage")

        assert result.count == 0
        assert not session.is_enabled
        assert session.reconciler.pending is None

    async def test_stale_extraction_after_switch(self, settings, make_chat):
        """A result arriving after the user switched chats is discarded."""

        async def slow_extract(messages, *_):
            session.guard.activate("chat-2")
            return '[{"summary": "belongs to chat one"}]'

        session = _session(settings, extractor=slow_extract)
        session.load(_state(make_chat(4)), None)
        vault = session.vault

        report = await session.extract_backlog()

        assert report.stale is True
        assert vault.memories == []

    def test_close(self, settings, make_chat):
        session = _session(settings)
        session.load(_state(make_chat(4)), None)

        session.close()

        assert session.conversation_id is None
        assert session.vault is None
        assert session.get_status()["vault"] is None


class TestProviderWiring:
    def test_provider_supplies_callables(self, settings):
        provider = MagicMock()
        provider.available = True
        session = _session(settings, provider=provider)

        assert session.scheduler.extractor is provider.extract
        assert session.pipeline.embedder is provider.embed
        assert session.pipeline.adjudicator is provider.adjudicate

    def test_embeddings_disabled(self, settings):
        settings.embeddings_enabled = False
        provider = MagicMock()
        provider.available = True
        session = _session(settings, provider=provider)

        assert session.pipeline.embedder is None
        assert session.scheduler.embedder is None

    def test_notify_falls_back_to_logging(self, settings, caplog):
        from memory_vault.session import VaultSession

        session = VaultSession(settings)
        with caplog.at_level("WARNING"):
            session.notify("warning", "Something to tell the user")

        assert "Something to tell the user" in caplog.text


class TestCreateSession:
    """Tests for the host entry point."""

    def test_builds_session_and_logging(self, tmp_path):
        import logging
        from unittest.mock import patch

        from memory_vault import create_session

        env_file = tmp_path / ".env"
        env_file.write_text("MEMORY_VAULT_TOKEN_BUDGET=321\n")
        root = logging.getLogger()
        saved = list(root.handlers)
        try:
            with patch.dict("os.environ", {"GEMINI_API_KEY": ""}):
                session = create_session(str(env_file), logs_dir=str(tmp_path / "logs"))

            assert session.settings.token_budget == 321
            assert session.scheduler is None
            assert (tmp_path / "logs" / "memory_vault.log").exists()
        finally:
            for handler in list(root.handlers):
                if handler not in saved:
                    root.removeHandler(handler)
                    handler.close()
            for handler in saved:
                if handler not in root.handlers:
                    root.addHandler(handler)
