"""
Tag taxonomy.

Responsibilities:
- Define the closed, versioned vocabulary of menu tags per category.
- Map tags to human-readable labels for reasons and display.
"""
