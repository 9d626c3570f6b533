from __future__ import annotations

from typing import Dict, List

from scholargy.rag.evidence import Query


NOT_FOUND_STATEMENT = "I don't have that information."

GROUNDING_INSTRUCTION = (
    'You are "Scholargy AI", a helpful assistant. '
    "Use ONLY the following SOURCES to answer. "
    "Do not use outside knowledge. "
    f'If the answer is not found in the sources, say "{NOT_FOUND_STATEMENT}"'
)


class GroundedPromptBuilder:
    """
    Builds the role-tagged message list sent to the completion capability.

    The context lives only in the system turn; the final user turn
    carries the literal question.
    """

    def __init__(self, instruction: str = GROUNDING_INSTRUCTION) -> None:
        self.instruction = instruction

    def system_turn(self, context_text: str) -> Dict[str, str]:
        return {
            "role": "system",
            "content": f"{self.instruction}\n\nSOURCES:\n{context_text}",
        }

    def build(self, query: Query, context_text: str) -> List[Dict[str, str]]:
        messages = [self.system_turn(context_text)]
        messages.extend(turn.to_message() for turn in query.history)
        messages.append({"role": "user", "content": query.text})
        return messages
