"""Topic quizzes run through the chat pipeline.

The model writes the questions as ``Q<n>:`` lines. The user's answers go
back in a second message, and the model grades them with a ``Score: X/5``
line and one numbered ``[Correct]`` or ``[Incorrect]`` line per answer.
Both exchanges are ordinary messages of a conversation named after the topic.
"""

import logging
import re
from collections.abc import Callable

from pydantic import BaseModel, ConfigDict, Field

from ollama_ui.chat.errors import ErrorNotice
from ollama_ui.chat.service import ChatService
from ollama_ui.chat.store import RenameConversation, SelectConversation
from ollama_ui.models.chat import Message

logger = logging.getLogger(__name__)

QUIZ_LENGTH = 5
QUESTION_PATTERN = re.compile(r"^\s*Q(\d+)\s*:\s*(.+?)\s*$")
SCORE_PATTERN = re.compile(rf"Score:\s*(\d+)\s*/\s*{QUIZ_LENGTH}")
FEEDBACK_PATTERN = re.compile(r"^\s*\d+\.")
CORRECT_MARKER = "[Correct]"


class QuizQuestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    question: str
    answer: str = ""


class QuizFeedback(BaseModel):
    """One graded answer.

    Attributes:
        text: The feedback line as the model wrote it.
        correct: Whether the line is marked ``[Correct]``.
    """

    model_config = ConfigDict(frozen=True)

    text: str
    correct: bool


class QuizGrade(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int | None = None
    feedback: list[QuizFeedback] = Field(default_factory=list)


def build_quiz_prompt(topic: str) -> str:
    lines = [
        f"Generate a {QUIZ_LENGTH}-question quiz about {topic}. "
        "Format your response exactly like this, with one question per line:"
    ]
    ordinals = ("First", "Second", "Third", "Fourth", "Fifth")
    lines += [f"Q{n}: {ordinals[n - 1]} question" for n in range(1, QUIZ_LENGTH + 1)]
    return "\n".join(lines)


def parse_questions(text: str) -> list[str]:
    """Return the question text of every ``Q<n>:`` line, in order."""
    questions = []
    for line in text.splitlines():
        match = QUESTION_PATTERN.match(line)
        if match:
            questions.append(match.group(2))
    return questions


def build_grading_prompt(topic: str, questions: list[QuizQuestion]) -> str:
    answered = "\n\n".join(
        f"Q{n}: {q.question}\nUser's answer: {q.answer}" for n, q in enumerate(questions, start=1)
    )
    feedback = "\n".join(
        f"{n}. [Correct/Incorrect] Feedback for answer {n}" for n in range(1, len(questions) + 1)
    )
    return (
        f"I'll provide a quiz about {topic} with the user's answers. "
        "Please evaluate each answer and provide feedback. "
        f"Also give a total score out of {QUIZ_LENGTH}.\n\n"
        f"{answered}\n\n"
        "Please format your response exactly like this:\n"
        f"Score: X/{QUIZ_LENGTH}\n\n"
        f"Feedback:\n{feedback}"
    )


def parse_grade(text: str) -> QuizGrade:
    """Read the score and the numbered feedback lines of a grading reply.

    Args:
        text: The model's grading reply.

    Returns:
        QuizGrade with ``score`` None when the reply has no score line.
    """
    match = SCORE_PATTERN.search(text)
    feedback = [
        QuizFeedback(text=line.strip(), correct=CORRECT_MARKER in line)
        for line in text.splitlines()
        if FEEDBACK_PATTERN.match(line)
    ]
    return QuizGrade(score=int(match.group(1)) if match else None, feedback=feedback)


class QuizSession:
    """One quiz at a time, played in its own conversation.

    Attributes:
        topic: Topic of the current quiz.
        questions: Questions with the answers submitted so far.
        grade: Result of the last grading, None until answers are checked.
    """

    def __init__(self, service: ChatService, on_change: Callable[[], None] | None = None) -> None:
        self._service = service
        self._on_change = on_change
        self.topic = ""
        self.questions: list[QuizQuestion] = []
        self.grade: QuizGrade | None = None
        self._conversation_id: str | None = None

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()

    def _last_reply(self) -> str:
        conversation = self._service.store.state.selected_conversation
        if conversation is None or not conversation.messages:
            return ""
        last = conversation.messages[-1]
        return last.content if last.role == "assistant" else ""

    async def _send(
        self, content: str, after: Callable[[], ErrorNotice | None]
    ) -> ErrorNotice | None:
        """Send ``content`` and run ``after`` on success, also when retried."""
        notice = await self._service.send(Message(role="user", content=content))
        if notice is None:
            return after()
        return self._continue_with(notice, after)

    def _continue_with(
        self, notice: ErrorNotice, after: Callable[[], ErrorNotice | None]
    ) -> ErrorNotice:
        if notice.retry is None:
            return notice
        replay = notice.retry

        async def retry() -> ErrorNotice | None:
            result = await replay()
            if isinstance(result, ErrorNotice):
                return self._continue_with(result, after)
            return after()

        return notice.model_copy(update={"retry": retry})

    async def generate(self, topic: str) -> ErrorNotice | None:
        """Start a quiz about ``topic`` in a new conversation.

        Returns:
            An ErrorNotice when the topic is blank, the send failed or the
            reply held no questions, otherwise None.
        """
        topic = topic.strip()
        if not topic:
            return ErrorNotice(title="Enter a topic for the quiz")

        self.topic = topic
        self.questions = []
        self.grade = None
        self._changed()

        conversation = self._service.new_conversation()
        self._conversation_id = conversation.id
        self._service.store.dispatch(RenameConversation(conversation.id, f"Quiz: {topic}"))
        return await self._send(build_quiz_prompt(topic), self._read_questions)

    def _read_questions(self) -> ErrorNotice | None:
        questions = parse_questions(self._last_reply())
        if not questions:
            logger.warning(f"Quiz reply for {self.topic!r} held no questions")
            return ErrorNotice(
                title="No quiz questions found",
                detail="The reply had no lines like 'Q1: ...'. Try again or pick another model.",
            )

        self.questions = [QuizQuestion(question=q) for q in questions]
        logger.info(f"Generated {len(self.questions)} quiz questions about {self.topic!r}")
        self._changed()
        return None

    async def check_answers(self, answers: list[str]) -> ErrorNotice | None:
        """Send the answers for grading.

        Args:
            answers: One answer per question, in order.

        Returns:
            An ErrorNotice when an answer is missing or the send failed,
            otherwise None.
        """
        if not self.questions:
            return ErrorNotice(title="Generate a quiz first")
        if len(answers) != len(self.questions) or any(not a.strip() for a in answers):
            return ErrorNotice(title="Please answer all questions before submitting")

        state = self._service.store.state
        conversation = next((c for c in state.conversations if c.id == self._conversation_id), None)
        if conversation is None:
            return ErrorNotice(
                title="The quiz conversation was deleted", detail="Generate a new quiz"
            )
        selected = state.selected_conversation
        if selected is None or selected.id != conversation.id:
            self._service.store.dispatch(SelectConversation(conversation))

        self.questions = [
            q.model_copy(update={"answer": a.strip()}) for q, a in zip(self.questions, answers)
        ]
        self._changed()
        prompt = build_grading_prompt(self.topic, self.questions)
        return await self._send(prompt, self._read_grade)

    def _read_grade(self) -> ErrorNotice | None:
        self.grade = parse_grade(self._last_reply())
        logger.info(f"Quiz about {self.topic!r} graded: {self.grade.score}/{QUIZ_LENGTH}")
        self._changed()
        return None
