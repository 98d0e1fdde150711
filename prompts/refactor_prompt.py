"""Refactor suggestion prompt.

The model is asked for strict JSON so the output can be parsed and grounded
against the same evidence it was shown.

Author: Hay Hoffman
"""

from string import Template

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from models.chunk import Chunk
from prompts.answer_prompt import format_evidence
from settings import MAX_REFACTOR_SUGGESTIONS

__all__ = ["REFACTOR_SYSTEM_PROMPT", "build_refactor_messages"]

REFACTOR_SYSTEM_PROMPT = f"""You are a senior code reviewer.
Analyze ONLY the provided evidence and propose practical refactor suggestions.
Do not mention files or lines outside this evidence.

Return STRICT JSON with this shape:
{{
  "suggestions": [
    {{
      "title": "short title",
      "rationale": "why this refactor is useful based on evidence",
      "expectedImpact": "expected effect",
      "citations": [
        {{
          "filePath": "path/to/file",
          "startLine": 1,
          "endLine": 10
        }}
      ]
    }}
  ]
}}

Rules:
- 1 to {MAX_REFACTOR_SUGGESTIONS} suggestions.
- Every suggestion must include at least one citation from evidence.
- Do not suggest frameworks, libraries, or files that are not in evidence.
- If evidence is weak, return fewer suggestions rather than generic advice.
- Keep text concise and technical.
- Output JSON only, no markdown."""

REFACTOR_USER_PROMPT_TEMPLATE = Template("""QUESTION:
$question

EVIDENCE:
$evidence""")


def build_refactor_messages(question: str, chunks: list[Chunk]) -> list[BaseMessage]:
    """Build the system and user messages for refactor suggestion generation."""
    user_prompt = REFACTOR_USER_PROMPT_TEMPLATE.substitute(
        question=question,
        evidence=format_evidence(chunks),
    )
    return [
        SystemMessage(content=REFACTOR_SYSTEM_PROMPT),
        HumanMessage(content=user_prompt),
    ]
