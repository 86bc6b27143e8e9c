"""Tests for submission orchestration between the store and the client."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from types import SimpleNamespace
import unittest
from unittest.mock import patch

from sight2sense.conversation import IMAGE_ONLY_PLACEHOLDER
from sight2sense.exceptions import InsightEngineError
from sight2sense.insight import ENGINE_FAILURE_TEXT, InsightClient
from sight2sense.models import Conversation, ImagePayload, SkillLevel, Turn
from sight2sense.session import AUTO_ANALYSIS_PROMPT, ChatSession


class ScriptedClient:
    """Stand-in insight client returning queued replies or raising queued errors."""

    def __init__(self, *outcomes: str | Exception) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[tuple[str, tuple[Turn, ...], SkillLevel, ImagePayload | None]] = []
        self.gate: asyncio.Event | None = None
        self.has_credential = True

    async def generate(
        self,
        prompt: str,
        history: Sequence[Turn],
        skill_level: SkillLevel,
        image: ImagePayload | None = None,
    ) -> str:
        self.calls.append((prompt, tuple(history), skill_level, image))
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class _FakeModels:
    def __init__(self) -> None:
        self.calls = 0

    async def generate_content(self, **_kwargs: object) -> None:
        self.calls += 1


class ChatSessionTests(unittest.IsolatedAsyncioTestCase):
    """Validate round trips, failures and admission control."""

    async def test_successful_round_trip_adds_two_turns(self) -> None:
        client = ScriptedClient("Check fuse F1.")
        session = ChatSession(client)  # type: ignore[arg-type]

        self.assertTrue(await session.submit("My circuit isn't powering on"))

        conversation = session.conversation
        self.assertEqual(len(conversation.turns), 2)
        self.assertEqual(conversation.turns[0].text, "My circuit isn't powering on")
        self.assertEqual(conversation.turns[1].text, "Check fuse F1.")
        self.assertFalse(conversation.pending)
        self.assertIsNone(conversation.error)

    async def test_failed_round_trip_adds_one_turn_and_error(self) -> None:
        client = ScriptedClient(InsightEngineError("rate limited"))
        session = ChatSession(client)  # type: ignore[arg-type]

        self.assertTrue(await session.submit("hello"))

        conversation = session.conversation
        self.assertEqual(len(conversation.turns), 1)
        self.assertFalse(conversation.pending)
        self.assertEqual(conversation.error, "rate limited")

    async def test_unexpected_client_error_still_settles_request(self) -> None:
        client = ScriptedClient(ValueError("bad client state"), "recovered")
        session = ChatSession(client)  # type: ignore[arg-type]

        self.assertTrue(await session.submit("hello"))

        conversation = session.conversation
        self.assertFalse(conversation.pending)
        self.assertEqual(conversation.error, "bad client state")
        self.assertEqual(len(conversation.turns), 1)

        self.assertTrue(await session.submit("again"))
        self.assertEqual(session.conversation.turns[-1].text, "recovered")

    async def test_blank_unexpected_error_uses_generic_text(self) -> None:
        client = ScriptedClient(RuntimeError())
        session = ChatSession(client)  # type: ignore[arg-type]
        await session.submit("hello")
        self.assertEqual(session.conversation.error, ENGINE_FAILURE_TEXT)

    async def test_sdk_client_construction_failure_records_error(self) -> None:
        with patch(
            "sight2sense.insight.genai.Client",
            side_effect=ValueError("Missing key inputs argument!"),
        ):
            session = ChatSession(InsightClient(api_key="secret"))
            await session.submit("hello")

        conversation = session.conversation
        self.assertFalse(conversation.pending)
        self.assertEqual(conversation.error, "Missing key inputs argument!")

    async def test_growth_per_round_trip(self) -> None:
        client = ScriptedClient("a", InsightEngineError("boom"), "b")
        session = ChatSession(client)  # type: ignore[arg-type]
        lengths = []
        for text in ("one", "two", "three"):
            await session.submit(text)
            lengths.append(len(session.conversation.turns))
        self.assertEqual(lengths, [2, 3, 5])
        self.assertIsNone(session.conversation.error)

    async def test_history_passed_to_client_excludes_current_turn(self) -> None:
        client = ScriptedClient("first answer", "second answer")
        session = ChatSession(client, skill_level=SkillLevel.ADVANCED)  # type: ignore[arg-type]
        await session.submit("first")
        await session.submit("second")

        prompt, history, skill, _image = client.calls[1]
        self.assertEqual(prompt, "second")
        self.assertEqual([t.text for t in history], ["first", "first answer"])
        self.assertEqual(skill, SkillLevel.ADVANCED)

    async def test_empty_submit_does_not_call_client(self) -> None:
        client = ScriptedClient()
        session = ChatSession(client)  # type: ignore[arg-type]
        self.assertFalse(await session.submit("  ", None))
        self.assertEqual(client.calls, [])
        self.assertTrue(session.conversation.is_empty)

    async def test_submit_while_pending_is_rejected(self) -> None:
        client = ScriptedClient("done")
        client.gate = asyncio.Event()
        session = ChatSession(client)  # type: ignore[arg-type]

        first = asyncio.create_task(session.submit("first"))
        await asyncio.sleep(0)
        self.assertTrue(session.conversation.pending)
        before = session.conversation

        self.assertFalse(await session.submit("second"))
        self.assertIs(session.conversation, before)

        client.gate.set()
        self.assertTrue(await first)
        self.assertEqual(len(session.conversation.turns), 2)
        self.assertEqual(len(client.calls), 1)

    async def test_image_only_submission(self) -> None:
        client = ScriptedClient("Looks like a buck converter.")
        session = ChatSession(client)  # type: ignore[arg-type]
        image = ImagePayload(data=b"jpeg")

        await session.submit(image=image)

        prompt, _history, _skill, sent_image = client.calls[0]
        self.assertEqual(prompt, IMAGE_ONLY_PLACEHOLDER)
        self.assertIs(sent_image, image)
        self.assertEqual(session.conversation.turns[0].text, IMAGE_ONLY_PLACEHOLDER)

    async def test_analyze_image_uses_automated_prompt(self) -> None:
        client = ScriptedClient("### Safety Check\n...")
        session = ChatSession(client)  # type: ignore[arg-type]
        await session.analyze_image(ImagePayload(data=b"jpeg"))
        self.assertEqual(client.calls[0][0], AUTO_ANALYSIS_PROMPT)
        user_turn = session.conversation.turns[0]
        self.assertEqual(user_turn.text, AUTO_ANALYSIS_PROMPT)
        self.assertIsNotNone(user_turn.image)

    async def test_reset_while_pending_discards_late_reply(self) -> None:
        client = ScriptedClient("late reply")
        client.gate = asyncio.Event()
        session = ChatSession(client)  # type: ignore[arg-type]

        pending = asyncio.create_task(session.submit("hello"))
        await asyncio.sleep(0)
        session.reset()
        client.gate.set()
        await pending

        conversation = session.conversation
        self.assertEqual(conversation.turns, ())
        self.assertFalse(conversation.pending)
        self.assertIsNone(conversation.error)

    async def test_reset_while_pending_discards_late_error(self) -> None:
        client = ScriptedClient(InsightEngineError("timeout"))
        client.gate = asyncio.Event()
        session = ChatSession(client)  # type: ignore[arg-type]

        pending = asyncio.create_task(session.submit("hello"))
        await asyncio.sleep(0)
        session.reset()
        client.gate.set()
        await pending

        self.assertIsNone(session.conversation.error)

    async def test_missing_credential_records_configuration_error(self) -> None:
        models = _FakeModels()
        client = InsightClient(
            api_key=None, client=SimpleNamespace(aio=SimpleNamespace(models=models))
        )
        session = ChatSession(client)

        await session.submit("hello")

        self.assertEqual(models.calls, 0)
        self.assertIn("GEMINI_API_KEY", session.conversation.error or "")
        self.assertEqual(len(session.conversation.turns), 1)

    async def test_on_change_sees_each_transition(self) -> None:
        client = ScriptedClient("answer")
        session = ChatSession(client)  # type: ignore[arg-type]
        seen: list[Conversation] = []
        session.on_change(seen.append)

        await session.submit("question")
        session.reset()

        self.assertEqual([c.pending for c in seen], [True, False, False])
        self.assertEqual([len(c.turns) for c in seen], [1, 2, 0])

    def test_set_skill_level_accepts_names(self) -> None:
        session = ChatSession(ScriptedClient())  # type: ignore[arg-type]
        self.assertEqual(session.set_skill_level("advanced"), SkillLevel.ADVANCED)
        self.assertEqual(session.skill_level, SkillLevel.ADVANCED)


if __name__ == "__main__":
    unittest.main()
