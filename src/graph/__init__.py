"""Import graph models, construction and algorithms."""
