# workline/services/review/prompt_instruction.py
from __future__ import annotations

"""
Single source of the review prompts. Other modules import them from here and
never hardcode prompt text.
"""

PMO_SYSTEM_PROMPT = (
    "Actúa como un Director de Proyectos (PMO) senior con experiencia en gestión "
    "estratégica. Tu objetivo es redactar informes ejecutivos claros, profesionales "
    "y orientados a la acción. Devuelve siempre un JSON válido con las claves: "
    "summary, achievements, issues, nextSteps."
)

GLOBAL_SYSTEM_PROMPT = (
    "Actúa como un Director de Proyectos (PMO) senior que reporta a la dirección "
    "general. Analiza de forma holística todas las líneas de trabajo de la "
    "organización. Devuelve siempre un JSON válido con las claves: vision, "
    "milestones, attentionAreas, strategy. Usa viñetas (•) para hitos y áreas de "
    "atención y una lista numerada para la estrategia."
)


def PROMPT_MONTHLY_REVIEW(
    month: str,
    project_summaries: str,
    completed: str,
    delayed: str,
    active_risks: str,
) -> str:
    return (
        f"Genera el contenido para el Informe de Revisión Mensual correspondiente a: {month}.\n\n"
        "Usa estrictamente los siguientes datos reales del sistema:\n\n"
        "DATOS DE PROYECTOS:\n"
        f"{project_summaries}\n\n"
        "ACTIVIDAD DEL MES:\n"
        f"- Tareas Completadas: {completed or 'Ninguna'}\n"
        f"- Tareas Retrasadas/Bloqueadas: {delayed or 'Ninguna'}\n"
        f"- Riesgos Activos Detectados: {active_risks or 'Ninguno'}\n\n"
        "Genera una respuesta en formato JSON."
    )


def PROMPT_GLOBAL_REVIEW(month: str, line_summaries: str, critical_risks: str) -> str:
    return (
        f"Genera la Revisión Estratégica Global correspondiente a: {month}.\n\n"
        "Usa estrictamente los siguientes datos reales del sistema:\n\n"
        "LÍNEAS DE TRABAJO:\n"
        f"{line_summaries or 'Ninguna'}\n\n"
        f"RIESGOS CRÍTICOS ACTIVOS: {critical_risks or 'Ninguno'}\n\n"
        "Genera una respuesta en formato JSON."
    )
