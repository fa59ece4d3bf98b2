# workline/services/review/monthly_review.py
"""
AI-drafted narrative reviews.

``generate_monthly_review`` summarises one line's current data and asks the
configured OpenAI-compatible model for a draft with four sections.
``generate_global_review`` does the same across every line for the admin
strategic review.

Neither function raises: without a configured client a canned draft is
returned (``source="mock"``), and any failure yields an error-notice draft
(``source="error"``) that tells the user to write the review by hand.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Literal, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from workline.services.analytics import global_dashboard
from workline.services.analytics.dashboard import is_active_risk
from workline.services.llm_chain.llm_utils import shape_system, shape_user
from workline.utils.helper import stringify
from workline.utils.logger import get_logger
from .prompt_instruction import (
    GLOBAL_SYSTEM_PROMPT,
    PMO_SYSTEM_PROMPT,
    PROMPT_GLOBAL_REVIEW,
    PROMPT_MONTHLY_REVIEW,
)

logger = get_logger(__name__)

DraftSource = Literal["ai", "mock", "error"]


class ReviewDraft(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    summary: str
    achievements: str
    issues: str
    next_steps: str = Field(alias="nextSteps")


class GlobalReviewDraft(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    vision: str
    milestones: str
    attention_areas: str = Field(alias="attentionAreas")
    strategy: str


MOCK_REVIEW = ReviewDraft(
    summary=(
        "Resumen simulado (API Key no configurada). El mes ha sido productivo con "
        "avances significativos en los proyectos principales."
    ),
    achievements=(
        "Se completaron las tareas clave de la fase inicial. La integración del "
        "equipo ha mejorado."
    ),
    issues=(
        "Algunos retrasos menores en la entrega de documentación. Riesgos "
        "identificados bajo control."
    ),
    next_steps=(
        "Proceder con la fase de desarrollo. Revisar asignación de recursos para el "
        "próximo sprint."
    ),
)

ERROR_REVIEW = ReviewDraft(
    summary="Error al generar el resumen automático. Por favor intente más tarde.",
    achievements="No se pudieron cargar los datos de la IA.",
    issues="Verifique su conexión o clave API.",
    next_steps="Proceda con la revisión manual.",
)

ERROR_GLOBAL_REVIEW = GlobalReviewDraft(
    vision="Error al generar la revisión global automática. Por favor intente más tarde.",
    milestones="No se pudieron cargar los datos de la IA.",
    attention_areas="Verifique su conexión o clave API.",
    strategy="Proceda con la revisión manual.",
)


# ==========================================
# Monthly (per line)
# ==========================================
def review_snapshot(
    projects: Sequence[Any], tasks: Sequence[Any], risks: Sequence[Any], today: date
) -> Dict[str, Any]:
    """The data points the monthly prompt is built from."""
    return {
        "completed": [t.title for t in tasks if t.status == "Completed"],
        "delayed": [
            t.title for t in tasks if t.status != "Completed" and t.end_date < today
        ],
        "active_risks": [r.description for r in risks if is_active_risk(r)],
        "projects": [
            f"- Proyecto: {p.name} (Estado: {p.status}, Progreso: {p.progress or 0}%)"
            for p in projects
        ],
    }


def build_review_prompt(month: str, snapshot: Dict[str, Any]) -> str:
    return PROMPT_MONTHLY_REVIEW(
        month,
        "\n".join(snapshot["projects"]),
        ", ".join(snapshot["completed"]),
        ", ".join(snapshot["delayed"]),
        ", ".join(snapshot["active_risks"]),
    )


async def generate_monthly_review(
    month: str,
    projects: Sequence[Any],
    tasks: Sequence[Any],
    risks: Sequence[Any],
    *,
    llm: Optional[Any],
    today: date,
) -> Tuple[ReviewDraft, DraftSource]:
    if llm is None:
        logger.info("LLM not configured, returning simulated review for %s", month)
        return MOCK_REVIEW.model_copy(), "mock"

    prompt = build_review_prompt(month, review_snapshot(projects, tasks, risks, today))
    logger.debug("Monthly review prompt: %s", stringify(prompt, 1000))
    messages = [shape_system(PMO_SYSTEM_PROMPT), shape_user(prompt)]
    try:
        draft = await llm.chat_completions_parse(messages, pydantic_model=ReviewDraft)
    except Exception:
        logger.exception("Monthly review generation failed for %s", month)
        return ERROR_REVIEW.model_copy(), "error"

    logger.info("Monthly review drafted for %s", month)
    return draft, "ai"


# ==========================================
# Global (all lines)
# ==========================================
def _bullets(items: List[str], empty: str) -> str:
    return "\n".join(f"• {i}" for i in items) if items else empty


def simulated_global_review(month: str, stats: Dict[str, Any], projects: Sequence[Any]) -> GlobalReviewDraft:
    """Canned draft built only from the numbers, used when no API key is configured."""
    completed = [p.name for p in projects if p.status == "Completed"]
    weak_lines = [s["name"] for s in stats["line_stats"] if s["health_label"] == "critical"]
    attention = [f"Salud crítica en la línea {name}." for name in weak_lines]
    if stats["critical_risks"]:
        attention.append(f"{stats['critical_risks']} riesgo(s) de prioridad alta siguen activos.")

    return GlobalReviewDraft(
        vision=(
            f"Resumen simulado (API Key no configurada). Análisis para {month}: la "
            f"organización muestra un avance medio del {stats['global_health']}% en los "
            f"proyectos abiertos de {stats['active_lines']} línea(s) de trabajo."
        ),
        milestones=_bullets([f"Cierre del proyecto '{n}'." for n in completed], "• Sin proyectos cerrados."),
        attention_areas=_bullets(attention, "• Sin áreas críticas detectadas."),
        strategy=(
            "1. Priorizar los proyectos con menor avance.\n"
            "2. Revisar semanalmente los riesgos de prioridad alta.\n"
            "3. Reasignar recursos entre líneas según su carga."
        ),
    )


def build_global_prompt(month: str, stats: Dict[str, Any], risks: Sequence[Any]) -> str:
    line_summaries = "\n".join(
        f"- Línea: {s['name']} (Proyectos: {s['project_count']}, Salud: {s['health']}%, "
        f"Riesgos activos: {s['risk_count']})"
        for s in stats["line_stats"]
    )
    critical = ", ".join(
        r.description for r in risks if r.priority == "High" and is_active_risk(r)
    )
    return PROMPT_GLOBAL_REVIEW(month, line_summaries, critical)


async def generate_global_review(
    month: str,
    lines: Sequence[Any],
    projects: Sequence[Any],
    risks: Sequence[Any],
    *,
    llm: Optional[Any],
) -> Tuple[GlobalReviewDraft, DraftSource]:
    stats = global_dashboard(lines, projects, risks)
    if llm is None:
        logger.info("LLM not configured, returning simulated global review for %s", month)
        return simulated_global_review(month, stats, projects), "mock"

    messages = [
        shape_system(GLOBAL_SYSTEM_PROMPT),
        shape_user(build_global_prompt(month, stats, risks)),
    ]
    try:
        draft = await llm.chat_completions_parse(messages, pydantic_model=GlobalReviewDraft)
    except Exception:
        logger.exception("Global review generation failed for %s", month)
        return ERROR_GLOBAL_REVIEW.model_copy(), "error"

    logger.info("Global review drafted for %s", month)
    return draft, "ai"
