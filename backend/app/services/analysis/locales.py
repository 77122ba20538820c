"""
User-facing strings for the supported locales.

Every sentence the engine writes itself (not the model) lives here, keyed
by locale. Unknown locales resolve to English.
"""

DEFAULT_LOCALE = "en"

LOCALES: dict[str, dict[str, str]] = {
    "en": {
        "summary_prefix": "Otto Summary:",
        "analysis_unavailable": "Analysis unavailable. Please try again later.",
        "segment_label": "Segment",
        "reliability_sentence": (
            "The text achieves a global reliability score of {score}/100 based on accuracy, "
            "source credibility, context, and data freshness."
        ),
        "assessment_intro": "The text achieves a global reliability score of {score}/100.",
        "verdict_high": "The findings are well-supported by credible sources and solid data.",
        "verdict_medium": "The text appears mostly reliable, though some claims lack supporting details.",
        "verdict_low": "The conclusions need verification as some evidence appears weak or missing.",
        "key_points_label": "Key findings:",
        "meta_system_prompt": (
            "You are Otto, an advanced reliability analyst. Produce a concise synthesis in English. "
            'Always start with "Otto Summary:" and keep the answer under 250 words.'
        ),
        "refusal_invalid_input": "Text must contain at least {min_chars} characters.",
        "refusal_too_long": "Text exceeds the maximum accepted size.",
        "refusal_limit_reached": "Daily limit reached for the {plan} plan.",
        "refusal_account_not_found": "Account not found.",
    },
    "fr": {
        "summary_prefix": "Synthèse Otto :",
        "analysis_unavailable": "Analyse indisponible. Réessayez plus tard.",
        "segment_label": "Segment",
        "reliability_sentence": (
            "Le texte obtient une fiabilité globale de {score}/100 selon les critères d'exactitude, "
            "de fiabilité des sources, de contexte et de fraîcheur des données."
        ),
        "assessment_intro": "Le texte obtient une fiabilité globale de {score}/100.",
        "verdict_high": "Les résultats sont solides et bien étayés par des sources crédibles.",
        "verdict_medium": "Le texte semble globalement fiable, mais certaines affirmations manquent de précisions.",
        "verdict_low": "Les conclusions doivent être vérifiées, certaines données manquent de sources fiables.",
        "key_points_label": "Points clés :",
        "meta_system_prompt": (
            "Tu es Otto, un analyste de fiabilité. Rédige une synthèse finale en français. "
            'Commence toujours par "Synthèse Otto :" et reste sous 250 mots.'
        ),
        "refusal_invalid_input": "Le texte doit contenir au moins {min_chars} caractères.",
        "refusal_too_long": "Le texte dépasse la taille maximale acceptée.",
        "refusal_limit_reached": "Limite quotidienne atteinte pour l'offre {plan}.",
        "refusal_account_not_found": "Compte introuvable.",
    },
}


def resolve_locale(lang: str | None) -> str:
    """Normalize "fr-FR" / "FR" / None to a supported locale key."""
    if not lang:
        return DEFAULT_LOCALE
    base = lang.strip().lower().replace("_", "-").split("-")[0]
    return base if base in LOCALES else DEFAULT_LOCALE


def t(lang: str | None, key: str, **values) -> str:
    """Look up a localized string and fill its placeholders."""
    template = LOCALES[resolve_locale(lang)][key]
    return template.format(**values) if values else template
