"""Staff availability service for the tax-office scheduling application."""
