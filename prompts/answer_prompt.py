"""Answer prompt for evidence-grounded code questions.

The prompt is split into system and user components:
- System prompt: Persona and grounding rules
- User prompt: Numbered evidence blocks and the question

Uses string.Template for safe substitution (code snippets contain braces).

Author: Hay Hoffman
"""

from string import Template

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from models.chunk import Chunk
from settings import INSUFFICIENT_EVIDENCE_ANSWER

__all__ = ["ANSWER_SYSTEM_PROMPT", "format_evidence", "build_answer_messages"]

ANSWER_SYSTEM_PROMPT = f"""You are a technical Q&A assistant for codebases. Answer ONLY using the provided evidence.

### INSTRUCTIONS
1. Answer the question concisely and accurately.
2. Every claim must be backed by evidence from the provided snippets.
3. For each claim, mention the file path and line range.
   Prefer explicit references in this format: [path/to/file.ext:L10-L20].
4. If the evidence is insufficient to answer the question, state: "{INSUFFICIENT_EVIDENCE_ANSWER}"
5. Do NOT use outside knowledge."""

ANSWER_USER_PROMPT_TEMPLATE = Template("""EVIDENCE:
$evidence

QUESTION:
$question

ANSWER:""")


def format_evidence(chunks: list[Chunk]) -> str:
    """Render chunks as numbered blocks: ``[Evidence i: path (lines a-b)]``."""
    return "\n\n".join(
        f"[Evidence {i}: {chunk.file_path} (lines {chunk.start_line}-{chunk.end_line})]\n{chunk.content}"
        for i, chunk in enumerate(chunks, start=1)
    )


def build_answer_messages(question: str, chunks: list[Chunk]) -> list[BaseMessage]:
    """Build the system and user messages for answer generation.

    Args:
        question: Normalized question text
        chunks: Ranked evidence chunks

    Returns:
        [SystemMessage, HumanMessage]
    """
    user_prompt = ANSWER_USER_PROMPT_TEMPLATE.substitute(
        evidence=format_evidence(chunks),
        question=question,
    )
    return [
        SystemMessage(content=ANSWER_SYSTEM_PROMPT),
        HumanMessage(content=user_prompt),
    ]
