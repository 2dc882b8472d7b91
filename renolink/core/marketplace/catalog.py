from renolink.common.enums import (
    OwnershipStatus,
    PreferredStartDate,
    ProjectCategory,
    ProjectStatus,
    PropertyType,
)

CATEGORY_LABELS: dict[ProjectCategory, str] = {
    ProjectCategory.KITCHEN: "Kitchen Renovation",
    ProjectCategory.BATHROOM: "Bathroom Renovation",
    ProjectCategory.BASEMENT: "Basement Finishing",
    ProjectCategory.ROOFING: "Roofing",
    ProjectCategory.FLOORING: "Flooring",
    ProjectCategory.PAINTING: "Painting",
    ProjectCategory.PLUMBING: "Plumbing",
    ProjectCategory.ELECTRICAL: "Electrical",
    ProjectCategory.LANDSCAPING: "Landscaping",
    ProjectCategory.GENERAL: "General Renovation",
    ProjectCategory.ADDITION: "Home Addition",
    ProjectCategory.DECK_PATIO: "Deck / Patio",
    ProjectCategory.WINDOWS_DOORS: "Windows & Doors",
    ProjectCategory.HVAC: "HVAC",
    ProjectCategory.HOME_EXTENSION: "Home Extension",
    ProjectCategory.ADU: "ADU (Accessory Dwelling Unit)",
    ProjectCategory.GARAGE_CONVERSION: "Garage Conversion",
    ProjectCategory.FULL_RENOVATION: "Full House Renovation",
    ProjectCategory.COMMERCIAL: "Commercial Renovation",
    ProjectCategory.OTHER: "Other",
}

PROPERTY_TYPE_LABELS: dict[PropertyType, str] = {
    PropertyType.HOUSE: "House",
    PropertyType.CONDO: "Condo / Apartment",
    PropertyType.TOWNHOUSE: "Townhouse",
    PropertyType.COMMERCIAL: "Commercial",
    PropertyType.OTHER: "Other",
}

OWNERSHIP_STATUS_LABELS: dict[OwnershipStatus, str] = {
    OwnershipStatus.OWN: "I own this property",
    OwnershipStatus.RENT: "I'm renting",
    OwnershipStatus.PROPERTY_MANAGER: "I'm a property manager",
}

START_DATE_LABELS: dict[PreferredStartDate, str] = {
    PreferredStartDate.IMMEDIATELY: "Immediately",
    PreferredStartDate.WITHIN_2_WEEKS: "Within 2 Weeks",
    PreferredStartDate.WITHIN_MONTH: "Within a Month",
    PreferredStartDate.WITHIN_3_MONTHS: "Within 3 Months",
    PreferredStartDate.FLEXIBLE: "Flexible",
}

SCOPE_OF_WORK_OPTIONS = (
    "Demolition",
    "Framing",
    "Drywall",
    "Electrical",
    "Plumbing",
    "Painting",
    "Flooring",
    "Fixture Installation",
    "Cleanup / Disposal",
)

PROVINCE_OPTIONS = (
    "Alberta",
    "British Columbia",
    "Manitoba",
    "New Brunswick",
    "Newfoundland and Labrador",
    "Northwest Territories",
    "Nova Scotia",
    "Nunavut",
    "Ontario",
    "Prince Edward Island",
    "Quebec",
    "Saskatchewan",
    "Yukon",
)

VALID_STATUS_TRANSITIONS: dict[ProjectStatus, list[ProjectStatus]] = {
    ProjectStatus.OPEN: [ProjectStatus.IN_PROGRESS, ProjectStatus.CLOSED],
    ProjectStatus.IN_PROGRESS: [ProjectStatus.COMPLETED, ProjectStatus.CLOSED],
    ProjectStatus.COMPLETED: [],
    ProjectStatus.CLOSED: [],
}
