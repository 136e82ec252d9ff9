"""CLI tools for screenforge."""
