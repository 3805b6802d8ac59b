"""CRM application package."""
