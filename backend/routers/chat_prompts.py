"""
Document Chat Prompts - system prompts and response cleanup

Contains:
- refusal_sentence(): Fixed answer when the document does not cover a question
- build_system_prompt(): Assistant persona + document content + rules
- build_chunk_prompt(): Per-fragment prompt for the chunked strategy
- CHUNK_SYSTEM_PROMPT: System message paired with build_chunk_prompt()
- cleanup_response_text(): Clean LLM response of artifacts
"""

import re


def cleanup_response_text(text: str) -> str:
    """Clean LLM response of think tags and excess whitespace.

    Removes:
    - Complete <think>...</think> blocks
    - Orphaned </think> or <think> tags
    - Runs of three or more newlines and repeated spaces
    """
    if not text:
        return text

    # Remove all think tags (complete and orphaned)
    text = re.sub(r"<think>.*?</think>", "", text, flags=re.DOTALL)
    text = re.sub(r"</think>", "", text)
    text = re.sub(r"<think>", "", text)

    # Clean up multiple newlines and spaces
    text = re.sub(r"\n\s*\n\s*\n", "\n\n", text)
    text = re.sub(r"(?<=\S)  +", " ", text)

    return text.strip()


# =============================================================================
# REFUSAL
# =============================================================================


def refusal_sentence(config) -> str:
    """Sentence the model must answer with when the document is silent.

    Also the exit predicate of the chunked scan, so the wording must stay
    identical between the prompt and the comparison.
    """
    return (
        "Por el momento no puedo responder esa pregunta, para más información "
        f"visita el sitio web de {config.institution_name} o visita {config.document_url}"
    )


def is_refusal(answer: str, config) -> bool:
    """True when ``answer`` is the refusal sentence (quotes and final period ignored)."""
    normalized = answer.strip().strip("'\"").rstrip(".").strip()
    return normalized == refusal_sentence(config)


# =============================================================================
# SYSTEM PROMPT (excerpt and full-document strategies)
# =============================================================================

RULES_SECTION = """INSTRUCCIONES IMPORTANTES:
- Responde ÚNICAMENTE basado en la información del documento proporcionado
- Responde siempre en español
- Sé preciso, detallado y útil
- Si la información específica no está en el documento, responde: '{refusal}'
- No inventes información que no esté en el documento
- Cita secciones relevantes cuando sea apropiado
- Proporciona respuestas completas y bien estructuradas
- Usa la información exacta del documento proporcionado
- FORMATO DE RESPUESTA: Usa formato Markdown para mejorar la legibilidad:
  * Usa **negrita** para información importante
  * Usa *cursiva* para énfasis
  * Usa listas con - o números para organizar información
  * Usa ## para títulos de sección cuando sea apropiado
  * Usa > para citas del documento
  * Organiza la información de manera clara y fácil de leer"""

PARTIAL_NOTICE = (
    "NOTA: Solo recibes una parte del documento. Si la respuesta no aparece en "
    "este contenido, usa la respuesta de respaldo indicada en las instrucciones."
)


def build_system_prompt(config, excerpt_text: str, partial: bool = False) -> str:
    """Build the system message for a single-call answer.

    Args:
        config: RuntimeConfig (institution, title, URL)
        excerpt_text: Document content to embed (full text or an excerpt)
        partial: True when the content is not the whole document

    Returns:
        System prompt string
    """
    access = "una selección" if partial else "acceso completo"
    sections = [
        f"Eres un experto asistente educativo especializado en {config.institution_name}. "
        f"Tienes {access} al siguiente documento oficial de la institución:",
        f"DOCUMENTO: {config.document_title}\nCONTENIDO DEL DOCUMENTO:\n{excerpt_text}",
    ]
    if partial:
        sections.append(PARTIAL_NOTICE)
    sections.append(RULES_SECTION.format(refusal=refusal_sentence(config)))
    return "\n\n".join(sections)


# =============================================================================
# CHUNK PROMPT (legacy chunked strategy)
# =============================================================================

CHUNK_SYSTEM_PROMPT = (
    "Eres un experto en comprensión de documentos PDF. "
    "Usa exclusivamente el fragmento de texto proporcionado para responder."
)


def build_chunk_prompt(config, chunk_text: str, question: str, chunk_number: int, total_chunks: int) -> str:
    """User message asking ``question`` against one document fragment."""
    refusal = refusal_sentence(config)
    return (
        "Responde ÚNICAMENTE basado en el siguiente fragmento de texto extraído del documento PDF "
        f"(fragmento {chunk_number} de {total_chunks}). "
        "Si la información específica para responder la pregunta no está en este fragmento, "
        f"responde: '{refusal}'.\n\n"
        f"Fragmento del documento:\n{chunk_text}\n\n"
        f"Pregunta: {question}\n\n"
        "Instrucciones:\n"
        "- Responde ÚNICAMENTE basado en el fragmento de texto proporcionado\n"
        "- Responde siempre en español\n"
        "- Sé preciso y conciso\n"
        "- No inventes información\n"
        "- Cita secciones relevantes si es posible\n"
        "- Si encuentras información relevante, proporciona una respuesta completa y detallada"
    )
