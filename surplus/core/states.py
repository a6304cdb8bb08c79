AVAILABLE = "available"
REQUESTED = "requested"
PARTIALLY_REQUESTED = "partially_requested"

LISTING_STATES = [AVAILABLE, REQUESTED, PARTIALLY_REQUESTED]

# A listing leaves `available` on its single claim and is never moved again here.
TRANSITIONS = {
    (AVAILABLE, REQUESTED),
    (AVAILABLE, PARTIALLY_REQUESTED),
}


def can_transition(src: str, dst: str) -> bool:
    return (src, dst) in TRANSITIONS


def is_claimable(status: str) -> bool:
    return any(can_transition(status, dst) for dst in LISTING_STATES)
