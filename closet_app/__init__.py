"""Smart Closet application package."""
