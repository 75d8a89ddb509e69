from __future__ import annotations

import asyncio
import unittest

from lessonflow.journey import Challenge, Lesson, LessonDefinition, LessonMode
from lessonflow.kernel import DisplayContent, SubmitCode


class LessonStateTests(unittest.TestCase):
    def setUp(self) -> None:
        self.lesson = Lesson("Basics")
        self.first = Challenge("first")
        self.second = Challenge("second")
        challenges = [self.first, self.second]
        self.lesson.set_challenge_lookup(lambda name: next((c for c in challenges if c.name == name), None))

    def test_apply_definition_overwrites_name_and_setup(self) -> None:
        setup = SubmitCode("import math")
        self.lesson.apply_definition(LessonDefinition(name="Renamed", setup=(setup,)))
        self.lesson.apply_definition(LessonDefinition(name="Renamed", setup=(setup,)))
        self.assertEqual(self.lesson.name, "Renamed")
        self.assertEqual(self.lesson.setup, (setup,))

    def test_start_challenge_marks_revealed(self) -> None:
        asyncio.run(self.lesson.start_challenge(self.first))
        self.assertIs(self.lesson.current_challenge, self.first)
        self.assertTrue(self.first.revealed)
        self.assertFalse(self.second.revealed)

    def test_start_challenge_by_name(self) -> None:
        asyncio.run(self.lesson.start_challenge("second"))
        self.assertIs(self.lesson.current_challenge, self.second)
        self.assertTrue(self.second.revealed)

    def test_unknown_challenge_name_is_ignored(self) -> None:
        asyncio.run(self.lesson.start_challenge(self.first))
        asyncio.run(self.lesson.start_challenge("does-not-exist"))
        self.assertIs(self.lesson.current_challenge, self.first)

    def test_start_challenge_none_clears_current(self) -> None:
        asyncio.run(self.lesson.start_challenge(self.first))
        asyncio.run(self.lesson.start_challenge(None))
        self.assertIsNone(self.lesson.current_challenge)
        self.assertTrue(self.first.revealed)

    def test_async_lookup_is_supported(self) -> None:
        async def lookup(name: str):
            await asyncio.sleep(0)
            return self.second if name == "second" else None

        self.lesson.set_challenge_lookup(lookup)
        asyncio.run(self.lesson.start_challenge("second"))
        self.assertIs(self.lesson.current_challenge, self.second)

    def test_default_lookup_resolves_nothing(self) -> None:
        lesson = Lesson()
        asyncio.run(lesson.start_challenge("anything"))
        self.assertIsNone(lesson.current_challenge)

    def test_clear(self) -> None:
        asyncio.run(self.lesson.start_challenge(self.first))
        self.lesson.clear()
        self.assertEqual(self.lesson.name, "")
        self.assertIsNone(self.lesson.current_challenge)


class ResetChallengeTests(unittest.TestCase):
    def test_teacher_mode_resets_to_fresh_challenges(self) -> None:
        lesson = Lesson(mode=LessonMode.TEACHER)
        original = Challenge("configured", setup=[SubmitCode("x = 1")])
        original.is_setup = True
        asyncio.run(lesson.start_challenge(original))

        lesson.reset_challenge()
        first_reset = lesson.current_challenge
        lesson.reset_challenge()
        second_reset = lesson.current_challenge

        self.assertIsNotNone(first_reset)
        self.assertIsNotNone(second_reset)
        self.assertIsNot(first_reset, original)
        self.assertIsNot(first_reset, second_reset)
        for fresh in (first_reset, second_reset):
            self.assertFalse(fresh.is_setup)
            self.assertFalse(fresh.revealed)
            self.assertEqual(fresh.setup, ())
            self.assertIsNone(fresh.current_evaluation)

    def test_student_mode_keeps_progress(self) -> None:
        lesson = Lesson(mode=LessonMode.STUDENT)
        challenge = Challenge("kept")
        challenge.is_setup = True
        asyncio.run(lesson.start_challenge(challenge))

        lesson.reset_challenge()
        lesson.reset_challenge()

        self.assertIs(lesson.current_challenge, challenge)
        self.assertTrue(challenge.is_setup)
        self.assertTrue(challenge.revealed)

    def test_mode_accepts_string_values(self) -> None:
        self.assertIs(Lesson(mode="student").mode, LessonMode.STUDENT)


class SetupClassifierTests(unittest.TestCase):
    def setUp(self) -> None:
        self.lesson_setup = SubmitCode("import math")
        self.challenge_setup = SubmitCode("helper = 1")
        self.environment_setup = SubmitCode("data = [1, 2]")
        self.lesson = Lesson("Classifier", setup=[self.lesson_setup])
        self.challenge = Challenge(
            "only",
            setup=[self.challenge_setup],
            environment_setup=[self.environment_setup],
            contents=[DisplayContent("Intro")],
        )

    def test_declared_commands_are_setup(self) -> None:
        asyncio.run(self.lesson.start_challenge(self.challenge))
        for command in (self.lesson_setup, self.challenge_setup, self.environment_setup):
            self.assertTrue(self.lesson.is_setup_command(command))

    def test_children_of_setup_commands_are_setup(self) -> None:
        asyncio.run(self.lesson.start_challenge(self.challenge))
        child = SubmitCode("data.append(3)", parent=self.environment_setup)
        self.assertTrue(self.lesson.is_setup_command(child))

    def test_equal_payload_is_not_setup(self) -> None:
        asyncio.run(self.lesson.start_challenge(self.challenge))
        lookalike = SubmitCode(self.challenge_setup.code)
        self.assertFalse(self.lesson.is_setup_command(lookalike))

    def test_grandchildren_are_not_setup(self) -> None:
        asyncio.run(self.lesson.start_challenge(self.challenge))
        child = SubmitCode("a = 1", parent=self.challenge_setup)
        grandchild = SubmitCode("b = 1", parent=child)
        self.assertFalse(self.lesson.is_setup_command(grandchild))

    def test_without_current_challenge_only_lesson_setup_counts(self) -> None:
        self.assertTrue(self.lesson.is_setup_command(self.lesson_setup))
        self.assertFalse(self.lesson.is_setup_command(self.challenge_setup))

    def test_empty_lesson_classifies_nothing(self) -> None:
        lesson = Lesson()
        self.assertFalse(lesson.is_setup_command(SubmitCode("x = 1")))

    def test_reset_challenge_drops_challenge_setup(self) -> None:
        asyncio.run(self.lesson.start_challenge(self.challenge))
        self.lesson.reset_challenge()
        self.assertFalse(self.lesson.is_setup_command(self.challenge_setup))
        self.assertTrue(self.lesson.is_setup_command(self.lesson_setup))


if __name__ == "__main__":
    unittest.main()
