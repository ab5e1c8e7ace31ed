"""Interpretation: latent state -> synthetic state and plain-language explanation.

The decision tree is evaluated in a fixed priority order, first match wins:

1. activation > 0.7 and tension > 0.7  -> Excité
2. tension > 0.8                       -> Stressé
3. activation < 0.3 and fatigue > 0.6  -> Calme
4. otherwise                           -> Mixte

Notes about growling and tail wagging are then appended when the matching
dominant signal is strong enough.
"""

from __future__ import annotations

from canisense.analysis.types import FusionResult, SyntheticState, UserInterpretation

EXCITED_ACTIVATION = 0.7
EXCITED_TENSION = 0.7
STRESSED_TENSION = 0.8
CALM_ACTIVATION = 0.3
CALM_FATIGUE = 0.6
GROWLING_NOTE_THRESHOLD = 0.5
WAG_NOTE_THRESHOLD = 0.7

DEFAULT_LOCALE = "en"

EXPLANATIONS: dict[str, dict[str, str]] = {
    "en": {
        SyntheticState.EXCITE.value: "The dog shows high excitement with agitation and vocalization.",
        SyntheticState.STRESSE.value: "High tension, possible stress.",
        SyntheticState.CALME.value: "Calm, relaxed behavior observed.",
        SyntheticState.MIXTE.value: "Mixed behavior observed.",
        "growling": "Growling detected.",
        "wagging": "Frequent tail wagging.",
    },
    "fr": {
        SyntheticState.EXCITE.value: (
            "Le chien montre des signes d'excitation élevés avec agitation et vocalisations."
        ),
        SyntheticState.STRESSE.value: "Signes de tension élevés, possible stress.",
        SyntheticState.CALME.value: "Comportement calme et détendu observé.",
        SyntheticState.MIXTE.value: "Comportement mixte observé.",
        "growling": "Grognements détectés.",
        "wagging": "Battement de queue fréquent.",
    },
}


def supported_locales() -> list[str]:
    return sorted(EXPLANATIONS)


def _catalog(locale: str) -> dict[str, str]:
    try:
        return EXPLANATIONS[locale]
    except KeyError:
        raise ValueError(
            f"Unsupported locale {locale!r}; expected one of {supported_locales()}"
        ) from None


def classify(activation: float, tension: float, fatigue: float) -> SyntheticState:
    """Apply the priority-ordered decision tree."""
    if activation > EXCITED_ACTIVATION and tension > EXCITED_TENSION:
        return SyntheticState.EXCITE
    if tension > STRESSED_TENSION:
        return SyntheticState.STRESSE
    if activation < CALM_ACTIVATION and fatigue > CALM_FATIGUE:
        return SyntheticState.CALME
    return SyntheticState.MIXTE


def interpret_latent_state(
    fusion_result: FusionResult, locale: str = DEFAULT_LOCALE
) -> UserInterpretation:
    """Map a fusion result to the user-facing interpretation."""
    catalog = _catalog(locale)
    latent = fusion_result.latent_state
    dominant = fusion_result.dominant_signals

    state = classify(latent.activation, latent.tension, latent.fatigue)
    parts = [catalog[state.value]]

    if any(m.name == "growling" and m.value > GROWLING_NOTE_THRESHOLD for m in dominant):
        parts.append(catalog["growling"])
    if any(m.name == "wagFrequency" and m.value > WAG_NOTE_THRESHOLD for m in dominant):
        parts.append(catalog["wagging"])

    return UserInterpretation(
        synthetic_state=state,
        confidence=fusion_result.confidence,
        explanation=" ".join(parts),
        metrics=dominant,
    )
