"""Static quiz-site generator for self-study quiz markdown."""
