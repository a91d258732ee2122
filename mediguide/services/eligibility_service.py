"""
Eligibility classifier deciding whether a medicine can be donated.

Rules are an ordered table of (name, predicate, template). The first rule
whose predicate matches wins, so the order encodes safety precedence:
unknown expiry, then expiry, then regulatory handling, then identification,
then packaging condition. Donation is only reachable through the last rule.
"""

from datetime import date
from typing import Callable, NamedTuple

from mediguide.models.domain import (
    Condition,
    Disposition,
    DispositionKind,
    MedicineState,
    MedicineType,
)
from mediguide.utils.logger import get_logger

logger = get_logger(__name__)


DISPOSAL_GUIDELINES = {
    "safeDisposal": [
        "Mix medicines (do not crush) with an unpalatable substance such as dirt, kitty litter, or used coffee grounds.",
        "Place the mixture in a container such as a sealed plastic bag.",
        "Throw the container in your household trash.",
        "Scratch out all personal information on the prescription label of your empty pill bottle or packaging, then dispose of the container.",
    ],
    "hazardous": [
        "Check if your community has a permanent drug disposal box or take-back program.",
        "Ask your pharmacy if they have a disposal kiosk.",
    ],
}


class DispositionTemplate(NamedTuple):
    kind: DispositionKind
    reasoning: str
    instructions: tuple[str, ...]
    resources: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()


class EligibilityRule(NamedTuple):
    name: str
    applies: Callable[[MedicineState, date], bool]
    template: DispositionTemplate


def is_expired(expiry: date | None, today: date) -> bool:
    """
    Single expiry boundary for every call site.

    A medicine expiring today is still usable: only dates strictly before
    the current calendar day count as expired.
    """
    return expiry is not None and expiry < today


UNKNOWN_EXPIRY = DispositionTemplate(
    kind=DispositionKind.CONSULT,
    reasoning=(
        "Since the expiry date is not visible, we cannot confirm its safety. "
        "Consuming or donating medicine with an unknown expiry date poses significant health risks."
    ),
    instructions=(
        "Please consult a pharmacist for professional identification if possible.",
        "If the medicine cannot be identified, follow safe disposal guidelines.",
        "Do not share or donate this medicine.",
    ),
    resources=("Local pharmacist",),
    warnings=("Unknown expiry dates are a major safety concern.",),
)

EXPIRED = DispositionTemplate(
    kind=DispositionKind.DISPOSE,
    reasoning=(
        "This medicine has passed its expiration date. Expired medicines can be "
        "less effective or even risky due to changes in chemical composition."
    ),
    instructions=(
        "Do not consume or donate this medicine.",
        "Use a drug take-back program if available.",
        "If throwing in trash: mix with an unpalatable substance (dirt, kitty litter), seal in a bag, and scratch out personal info.",
    ),
    resources=("Drug take-back program", "Pharmacy disposal kiosk"),
    warnings=("Expired medicines must never be consumed or shared.",),
)

CONTROLLED = DispositionTemplate(
    kind=DispositionKind.DISPOSE,
    reasoning=(
        "This is a controlled substance. These require strict handling and cannot "
        "be donated due to legal and safety regulations."
    ),
    instructions=(
        "Must be disposed of through authorized collectors or take-back programs.",
        "Check the DEA website for authorized disposal locations.",
        "Do not flush unless specifically instructed by the FDA 'flush list'.",
    ),
    resources=("DEA authorized collectors", "FDA flush list"),
    warnings=("Controlled substances are subject to legal disposal requirements.",),
)

UNKNOWN_TYPE = DispositionTemplate(
    kind=DispositionKind.CONSULT,
    reasoning=(
        "Safety first: since you are unsure about the medicine type, "
        "we cannot provide an automated recommendation."
    ),
    instructions=(
        "Take the medicine to a local pharmacist for identification.",
        "Keep the medicine in its original packaging if possible.",
        "Do not consume or donate until professionally identified.",
    ),
    resources=("Local pharmacist",),
    warnings=("Unidentified medicines may be controlled or hazardous.",),
)

OPENED = DispositionTemplate(
    kind=DispositionKind.DISPOSE,
    reasoning=(
        "This medicine has been opened or partially used. For safety and hygiene "
        "reasons, opened medicines should not be donated."
    ),
    instructions=(
        "Opened medicines can be contaminated or degraded.",
        "Dispose of following standard safe disposal procedures.",
        "Consider checking for a local pharmacy disposal kiosk.",
    ),
    resources=("Pharmacy disposal kiosk",),
    warnings=("Opened packaging cannot guarantee the medicine's integrity.",),
)

DONATE = DispositionTemplate(
    kind=DispositionKind.DONATE,
    reasoning=(
        "Based on general guidelines, this medicine may be eligible for donation. "
        "It is unexpired, unopened, and appears suitable for helping others."
    ),
    instructions=(
        "Keep the medicine in its original, sealed packaging.",
        "Store in a cool, dry place until you can donate.",
        "Contact the donation center first to confirm they accept this specific brand.",
    ),
    resources=("Nearby hospitals and pharmacies accepting donations",),
    warnings=("Acceptance policies vary: always confirm with the center before visiting.",),
)


ELIGIBILITY_RULES: tuple[EligibilityRule, ...] = (
    EligibilityRule(
        "unknown_expiry",
        lambda state, today: not state.expiry_known or state.expiry_date is None,
        UNKNOWN_EXPIRY,
    ),
    EligibilityRule(
        "expired",
        lambda state, today: is_expired(state.expiry_date, today),
        EXPIRED,
    ),
    EligibilityRule(
        "controlled_substance",
        lambda state, today: state.medicine_type == MedicineType.CONTROLLED,
        CONTROLLED,
    ),
    EligibilityRule(
        "unknown_type",
        lambda state, today: state.medicine_type == MedicineType.UNKNOWN,
        UNKNOWN_TYPE,
    ),
    EligibilityRule(
        "opened_or_partial",
        lambda state, today: state.condition != Condition.UNOPENED,
        OPENED,
    ),
    EligibilityRule("donation_eligible", lambda state, today: True, DONATE),
)


def classify(state: MedicineState, today: date | None = None) -> Disposition:
    """
    Maps a medicine state to a disposition.

    Args:
        state: Attributes collected from the user
        today: Evaluation date, defaults to the local calendar date

    Returns:
        Disposition of the first matching rule (never raises)
    """
    today = today or date.today()
    # The last rule always matches
    rule = next(r for r in ELIGIBILITY_RULES if r.applies(state, today))
    logger.info("disposition_classified", rule=rule.name, kind=rule.template.kind.value)
    return _build(rule)


def _build(rule: EligibilityRule) -> Disposition:
    template = rule.template
    return Disposition(
        kind=template.kind,
        rule=rule.name,
        reasoning=template.reasoning,
        instructions=template.instructions,
        resources=template.resources,
        warnings=template.warnings,
    )
