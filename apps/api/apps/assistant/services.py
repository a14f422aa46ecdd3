"""
Assistant services: mood commentary, dosage walkthroughs and IVF Q&A.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from django.conf import settings

from apps.core.exceptions import ValidationError

from .client import TextCompletionClient
from .prompts import (
    CHAT_SYSTEM_MESSAGE,
    DIAGRAM_SEPARATOR,
    dosage_explanation_prompt,
    ivf_chat_prompt,
    mood_analysis_prompt,
)

CHAT_MAX_TOKENS = 500
CHAT_TEMPERATURE = 0.7


@dataclass(frozen=True)
class DosageExplanation:
    explanation: str
    diagram: Optional[str] = None
    images: List[str] = field(default_factory=list)


def analyze_mood(mood_text: str, medication_name: Optional[str] = None,
                 client: Optional[TextCompletionClient] = None) -> str:
    """
    Reassuring 3-4 sentence commentary on a logged mood.

    Raises UpstreamFailure when the assistant is unavailable.
    """
    if not mood_text or not mood_text.strip():
        raise ValidationError('Mood text is required', details={'mood': 'Required'})

    client = client or TextCompletionClient()
    return client.complete(
        mood_analysis_prompt(mood_text.strip(), medication_name),
        purpose='mood_analysis',
    )


def explain_dosage(medication_name: str, dosage: str,
                   client: Optional[TextCompletionClient] = None) -> DosageExplanation:
    """Summary plus a Mermaid flowchart; the diagram is None when the answer has no separator."""
    errors = {}
    if not medication_name:
        errors['medication_name'] = 'Required'
    if not dosage:
        errors['dosage'] = 'Required'
    if errors:
        raise ValidationError('Missing medication name or dosage', details=errors)

    client = client or TextCompletionClient()
    content = client.complete(
        dosage_explanation_prompt(medication_name, dosage),
        model=settings.OPENAI_CHAT_MODEL,
        purpose='dosage_explanation',
    )

    explanation, _, diagram = content.partition(DIAGRAM_SEPARATOR)
    return DosageExplanation(explanation=explanation.strip(), diagram=diagram.strip() or None)


def answer_question(question: str, client: Optional[TextCompletionClient] = None) -> str:
    if not question or not question.strip():
        raise ValidationError('Question is required', details={'question': 'Required'})

    client = client or TextCompletionClient()
    return client.complete(
        ivf_chat_prompt(question.strip()),
        system=CHAT_SYSTEM_MESSAGE,
        model=settings.OPENAI_CHAT_MODEL,
        max_tokens=CHAT_MAX_TOKENS,
        temperature=CHAT_TEMPERATURE,
        purpose='ivf_chat',
    )
