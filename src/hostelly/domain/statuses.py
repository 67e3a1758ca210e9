"""Status vocabularies for allocations and rooms."""

# Allocation statuses
ACTIVE = "active"
COMPLETED = "completed"
CANCELLED = "cancelled"
EARLY_CHECKOUT = "early_checkout"
OVERSTAYED = "overstayed"

ALLOCATION_STATUSES = (ACTIVE, COMPLETED, CANCELLED, EARLY_CHECKOUT, OVERSTAYED)

# The member is physically present; these rows count towards occupancy and
# towards the one-live-allocation-per-member rule.
OCCUPYING_STATUSES = (ACTIVE, OVERSTAYED)

TERMINAL_STATUSES = (COMPLETED, CANCELLED, EARLY_CHECKOUT)

# Room statuses
ROOM_AVAILABLE = "available"
ROOM_OCCUPIED = "occupied"
ROOM_UNDER_MAINTENANCE = "under_maintenance"
ROOM_RESERVED = "reserved"
ROOM_OUT_OF_SERVICE = "out_of_service"

ROOM_STATUSES = (
    ROOM_AVAILABLE,
    ROOM_OCCUPIED,
    ROOM_UNDER_MAINTENANCE,
    ROOM_RESERVED,
    ROOM_OUT_OF_SERVICE,
)

# Set by administrators; occupancy changes never overwrite them.
BLOCKING_ROOM_STATUSES = (ROOM_UNDER_MAINTENANCE, ROOM_RESERVED, ROOM_OUT_OF_SERVICE)

# Derived by the reconciler from occupancy.
OCCUPIABLE_ROOM_STATUSES = (ROOM_AVAILABLE, ROOM_OCCUPIED)

# Reasons carried by ALLOCATION_DEACTIVATED events
DEACTIVATION_REASONS = (COMPLETED, EARLY_CHECKOUT, CANCELLED)
