"""
Aura Frog learning system.

Detects corrections and approvals in user messages, deduplicates them,
promotes recurring corrections to learned patterns and persists all of it
to local JSON files or a remote REST backend.

Entry points:
    pipeline.capture_feedback      auto-learn (user prompts)
    smart_learn.SmartLearner       smart-learn (successful tool use)
    workflow_edit.WorkflowEditLearner  workflow-edit-learn (user edits)
    workflow.record_workflow_event     workflow phase transitions
"""
