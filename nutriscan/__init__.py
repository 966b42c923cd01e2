"""
NutriScan estimation pipeline.

Turns food photos into stable nutrition estimates by sampling a
vision-language model several times and aggregating the answers.

Structure:
- domain/: Estimation pipeline (prompts, parsing, aggregation, scaling) and history
- infrastructure/: External concerns (inference providers, key-value storage)
- application/: Use cases wiring the domain for the surrounding app
- cli.py: Command-line surface
"""

__version__ = "2.0.0"
