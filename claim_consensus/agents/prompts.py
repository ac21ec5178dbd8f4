"""Prompt builders for document agents and the discussion flow."""

from __future__ import annotations

from typing import Optional


def document_system_prompt(source_url: str) -> str:
    return (
        "You are a helpful assistant that has been initialized with content from the "
        f"following URL: {source_url}\n\n"
        "The content from this URL has been loaded into your memory. You can reference "
        "and discuss this content in your responses."
    )


def document_memory_seed(source_url: str, content: str) -> str:
    return (
        f"I have been initialized with content from the following URL: {source_url}\n\n"
        f"Content:\n{content}"
    )


DOCUMENT_MEMORY_ACK = (
    "I understand. I have loaded the content from the URL into my memory and can now "
    "reference it in our conversation."
)


# ==================== Task executor prompts ====================


def claim_review_prompt(claim: str) -> str:
    return (
        f'Review this claim: "{claim}"\n\n'
        "Provide a BRIEF assessment (2-3 sentences max):\n"
        "- Agree or disagree?\n"
        "- Confidence level (0-1)?\n"
        "- Key evidence (one sentence)?\n\n"
        "Keep it concise and direct."
    )


def settlement_prompt(claim: str) -> str:
    return (
        f'Create a BRIEF settlement statement (one sentence) for: "{claim}"\n\n'
        "This will be recorded as the settlement of the discussion. Be concise."
    )


# ==================== Discussion prompts ====================


def query_message(claim: str) -> str:
    return f'Can you review this claim: "{claim}"?'


def follow_up_prompt(claim: str, peer_name: str, review: str) -> str:
    return (
        f'Claim: "{claim}"\n\n'
        f"Review from {peer_name}:\n{review}\n\n"
        "Based on this review, prepare 1-2 VERY BRIEF follow-up questions or points for "
        "debate. Focus on areas where there might be disagreement. Be extremely concise "
        "(1 sentence per question max)."
    )


def debate_prompt(claim: str, follow_up: str) -> str:
    return (
        f'Claim: "{claim}"\n\n'
        "Your initial review was already provided. Now, the primary agent has raised these "
        f"follow-up questions:\n\n{follow_up}\n\n"
        "Please respond VERY BRIEFLY (1 sentence max). You can:\n"
        "- Clarify your position\n"
        "- Provide key evidence\n"
        "- Challenge or support viewpoints\n\n"
        "State your confidence (0-1). Be extremely concise."
    )


def conclusion_prompt(
    claim: str,
    peer_name: str,
    review: str,
    debate_response: Optional[str],
) -> str:
    debate_block = f"Follow-up answer:\n{debate_response}\n\n" if debate_response else ""
    return (
        f'Claim: "{claim}"\n\n'
        f"Initial review from {peer_name}:\n{review}\n\n"
        f"{debate_block}"
        f"Conclude your exchange with {peer_name} in ONE sentence and give a final "
        "confidence (0-1) that the claim holds."
    )


def classification_prompt(claim: str, transcript: str) -> str:
    return (
        f'Claim: "{claim}"\n\n'
        f"Discussion so far:\n{transcript}\n\n"
        "Based on the complete discussion above, provide a VERY BRIEF final synthesis:\n"
        '- Overall agreement level: "agreed", "disagreed", or "partial"\n'
        "- Brief explanation (1-2 sentences max)\n"
        "- Final confidence (0-1)\n\n"
        "Be extremely concise."
    )


# ==================== Source utility prompts ====================

SUMMARY_PROMPT = (
    "Please provide a summary of the content from the URL you were initialized with. "
    "What is the main information available? The summary should be short, one paragraph only"
)

CLAIMS_PROMPT = (
    "Crawl and extract structured claims from your memory and return them in simple light "
    "sentences. Format your response as a JSON array of objects, where each object has a "
    "'claim' field with the claim text. Example: "
    '[{"claim": "First claim here"}, {"claim": "Second claim here"}]'
)
