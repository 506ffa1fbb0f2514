"""Conversation summarization service.

When a history grows past the configured threshold, the Summarizer asks the
provider that owns the history to condense it. The history is then replaced
by a single system message carrying the summary.
"""

import logging

from chorus_server.providers.base import ProviderClient
from chorus_server.sessions.history import ConversationHistory
from chorus_server.sessions.types import Message

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 10
DEFAULT_TEMPERATURE = 0.3

SUMMARIZATION_PROMPTS = {
    "en": (
        "You are an assistant specialized in conversation summarization. "
        "Your task is to create a concise summary of the provided conversation history.\n\n"
        "Requirements for the summary:\n"
        "1. Preserve all key facts, names, numbers, and important information\n"
        "2. Combine similar topics into a single paragraph\n"
        "3. Use brief but informative formulations\n"
        "4. Maintain chronological order of discussed topics\n"
        "5. Do not add information that was not in the original conversation\n"
        "6. If a question was asked and answered, preserve the essence of both\n\n"
        "Output format: Write a concise summary of the conversation as coherent text."
    ),
    "ru": (
        "Ты - ассистент для суммаризации диалогов. "
        "Твоя задача - создать краткое резюме предоставленной истории разговора.\n\n"
        "Требования к резюме:\n"
        "1. Сохрани все ключевые факты, имена, числа и важную информацию\n"
        "2. Объедини похожие темы в один абзац\n"
        "3. Используй краткие, но информативные формулировки\n"
        "4. Сохрани хронологический порядок обсуждения тем\n"
        "5. Не добавляй информацию, которой не было в оригинале\n"
        "6. Если был задан вопрос и дан ответ, сохрани суть обоих\n\n"
        "Формат ответа: напиши краткое резюме разговора в виде связного текста."
    ),
}

REQUEST_TEMPLATES = {
    "en": "Please create a concise summary of the following conversation:\n\n{conversation}",
    "ru": "Пожалуйста, создай краткое резюме следующего разговора:\n\n{conversation}",
}

SUMMARY_PREFIXES = {
    "en": "[Summary of previous conversation]: ",
    "ru": "[Резюме предыдущего разговора]: ",
}


class SummarizationError(Exception):
    """The provider could not produce a summary."""


class Summarizer:
    """Condense an overflowing history into one system message.

    Attributes:
        threshold: Message count at which summarization kicks in
        temperature: Sampling temperature used for the summary request
    """

    def __init__(
        self,
        threshold: int = DEFAULT_THRESHOLD,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> None:
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self.threshold = threshold
        self.temperature = temperature

    def should_summarize(self, message_count: int) -> bool:
        return message_count >= self.threshold

    async def summarize(
        self, history: ConversationHistory, client: ProviderClient
    ) -> Message:
        """Summarize the history with the given provider and replace it.

        The history is only modified when the provider returns usable text.

        Args:
            history: History to condense
            client: Provider that owns the history

        Returns:
            The summary message now forming the whole history

        Raises:
            SummarizationError: If the provider fails or returns empty text
        """
        language = client.language if client.language in SUMMARIZATION_PROMPTS else "en"
        logger.info(f"Starting summarization of {history.size()} messages")

        conversation = "\n\n".join(
            f"{client.localized_role_name(message.role)}: {message.content}"
            for message in history
        )
        request = Message.user(
            REQUEST_TEMPLATES[language].format(conversation=conversation)
        )

        result = await client.send(
            [request],
            system_prompt=SUMMARIZATION_PROMPTS[language],
            temperature=self.temperature,
        )

        if result.is_error:
            raise SummarizationError(f"Failed to summarize history: {result.text}")
        if not result.text.strip():
            raise SummarizationError("Failed to summarize history: empty summary")

        summary = history.replace_with_summary(
            SUMMARY_PREFIXES[language] + result.text.strip()
        )
        logger.info(f"Successfully generated summary: {result.text[:100]}...")
        return summary
