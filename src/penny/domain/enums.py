from enum import Enum

class Category(str, Enum):
    """Closed set of spending classes an expense can belong to"""
    FOOD = "Food"
    TRANSPORT = "Transport"
    SHOPPING = "Shopping"
    ENTERTAINMENT = "Entertainment"
    UTILITIES = "Utilities"
    HEALTH = "Health"
    FINANCE = "Finance"
    OTHER = "Other" # fallback when no rule matches
