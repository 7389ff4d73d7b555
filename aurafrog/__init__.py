"""
Aura Frog Learn - Feedback learning for AI coding workflows.

Aura Frog Learn provides:
- Correction/approval detection on user prompts
- Learnability filtering of one-off, task-specific instructions
- Pattern aggregation with one-shot promotion to learned rules
- Local JSON or remote REST persistence with a Markdown digest
"""

__version__ = "1.0.0"
__author__ = "Aura Frog"
