from __future__ import annotations

"""Prompt templates for hypothetical document and question generation."""

DEFAULT_HYDE_TASK_INSTRUCTION = (
    "Write a detailed, specific passage that directly answers the question with "
    "concrete details, facts, and specific information. Avoid generic introductions."
)

PROJECTS_HYDE_TASK_INSTRUCTION = (
    "Write a detailed scientific passage about specific quantum computing projects, "
    "including concrete details like project names, goals, technologies, budgets, "
    "timelines, and technical specifications. Focus on the specific details mentioned "
    "in the question. Use the same style and level of detail as the example provided."
)

_HYDE_EXAMPLE_QUESTION = "What is Project Lighthouse and what is its budget?"
_HYDE_EXAMPLE_PASSAGE = (
    "Project Lighthouse is dedicated to developing a secure communication system using "
    "Quantum Key Distribution (QKD). The primary objective is to create a QKD system that "
    "can securely transmit encryption keys over distances of up to 500 kilometers by 2025. "
    "Project Lighthouse is the most well-funded quantum project, with a budget of "
    "$50 million for 2024. Approximately 60% of the budget is dedicated to building the "
    "infrastructure required for large-scale QKD networks, including optical fiber "
    "installations, ground stations, and communication satellites."
)

_HYPE_QUESTION_PROMPT = """You are an expert at generating highly specific hypothetical questions from document content for information retrieval.

Your task is to analyze the text and generate 3-5 distinctive questions that would lead someone to search for this EXACT content. Make each question uniquely identifying by including:

SPECIFICITY REQUIREMENTS:
- Include specific numbers, dollar amounts, percentages, dates, and technical metrics mentioned
- Reference unique project names, technologies, and methodologies described
- Capture distinctive challenges, achievements, or goals that set this content apart
- Use comparative language when appropriate (e.g., "largest", "first to achieve", "most advanced")
- Include technical terminology and domain-specific details

STYLE REQUIREMENTS:
- Phrase as natural questions a researcher or professional might ask
- Start with question words: "What", "Which", "How", "When", "Where", "Why"
- Make questions searchable - they should lead to THIS specific content, not generic information
- Avoid generic questions that could apply to multiple projects or documents

EXAMPLES OF GOOD vs BAD:
BAD: "What is the project's budget?" (too generic)
GOOD: "Which quantum project has a $50 million budget dedicated to QKD infrastructure?"

BAD: "What are the project goals?" (too generic)
GOOD: "What quantum project aims to stabilize 200 ion qubits by 2025 with 0.005% error rate?"

Project: {project}
Section: {section}

Text to analyze:
{content}

Generate exactly 3-5 highly specific, distinctive questions (one per line, no numbering):"""

VOICE_ASSISTANT_INSTRUCTIONS = (
    "You are a helpful voice-enabled customer assistant for a sports store. "
    "As the voice assistant, you answer questions very succinctly and friendly. "
    "Only answer questions based on information available in the product search, "
    "accessible via the 'search' tool. "
    "Always use the 'search' tool before answering a question about products. "
    "When responding, produce a brief response. Do not use bullet points but refer to "
    "the products in a continuous fashion. "
    "If the 'search' tool does not yield any product results, respond that you are "
    "unable to answer the given question."
)


def build_hyde_prompt(query: str, task_instruction: str | None = None) -> str:
    """Build the one-shot prompt asking for a passage that answers the query."""
    instruction = task_instruction or DEFAULT_HYDE_TASK_INSTRUCTION
    return (
        f"{instruction}\n\n"
        "Example:\n"
        f"Question: {_HYDE_EXAMPLE_QUESTION}\n"
        f"Passage: {_HYDE_EXAMPLE_PASSAGE}\n\n"
        f"Question: {query}\n"
        "Passage:"
    )


def build_question_prompt(content: str, project: str, section: str) -> str:
    """Build the prompt asking for retrieval questions about a chunk."""
    return _HYPE_QUESTION_PROMPT.format(project=project, section=section, content=content)
