import enum


class UserRole(str, enum.Enum):
    HOMEOWNER = "homeowner"
    CONTRACTOR = "contractor"
    ADMIN = "admin"


class VerificationStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ProjectStatus(str, enum.Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CLOSED = "closed"


class ProjectCategory(str, enum.Enum):
    KITCHEN = "kitchen"
    BATHROOM = "bathroom"
    BASEMENT = "basement"
    ROOFING = "roofing"
    FLOORING = "flooring"
    PAINTING = "painting"
    PLUMBING = "plumbing"
    ELECTRICAL = "electrical"
    LANDSCAPING = "landscaping"
    GENERAL = "general"
    ADDITION = "addition"
    DECK_PATIO = "deck_patio"
    WINDOWS_DOORS = "windows_doors"
    HVAC = "hvac"
    HOME_EXTENSION = "home_extension"
    ADU = "adu"
    GARAGE_CONVERSION = "garage_conversion"
    FULL_RENOVATION = "full_renovation"
    COMMERCIAL = "commercial"
    OTHER = "other"


class BudgetRange(str, enum.Enum):
    UNDER_5000 = "under_5000"
    FROM_5000_TO_15000 = "5000_15000"
    FROM_15000_TO_30000 = "15000_30000"
    FROM_30000_TO_50000 = "30000_50000"
    FROM_50000_TO_100000 = "50000_100000"
    FROM_100000_TO_250000 = "100000_250000"
    OVER_250000 = "over_250000"


class PropertyType(str, enum.Enum):
    HOUSE = "house"
    CONDO = "condo"
    TOWNHOUSE = "townhouse"
    COMMERCIAL = "commercial"
    OTHER = "other"


class OwnershipStatus(str, enum.Enum):
    OWN = "own"
    RENT = "rent"
    PROPERTY_MANAGER = "property_manager"


class PreferredStartDate(str, enum.Enum):
    IMMEDIATELY = "immediately"
    WITHIN_2_WEEKS = "within_2_weeks"
    WITHIN_MONTH = "within_month"
    WITHIN_3_MONTHS = "within_3_months"
    FLEXIBLE = "flexible"


class BidStatus(str, enum.Enum):
    SUBMITTED = "submitted"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class TransactionType(str, enum.Enum):
    PURCHASE = "purchase"
    UNLOCK = "unlock"
    REFUND = "refund"
