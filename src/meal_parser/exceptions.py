"""Exceptions for the meal parser package."""


class MealParserError(Exception):
    """Base class for every error raised by meal_parser."""
    pass


class ParseAmbiguity(MealParserError):
    """Raised when an utterance was parsed with too little confidence to log it blindly."""

    def __init__(self, prompts):
        self.prompts = list(prompts)
        super().__init__("; ".join(self.prompts) or "Ambiguous meal description")


class NoCatalogMatch(MealParserError):
    """Raised when a mention has no catalog match and a caller requires one."""

    def __init__(self, food_name: str):
        self.food_name = food_name
        super().__init__(f"No catalog match for '{food_name}'")


class CatalogUnavailable(MealParserError):
    """Raised by catalog backends on transient I/O failures."""
    pass


class InvalidQuantity(MealParserError):
    """Raised when a quantity cannot be used to scale nutrients."""

    def __init__(self, quantity, reason: str = "must be greater than zero"):
        self.quantity = quantity
        super().__init__(f"Quantity {reason}, got {quantity}")
