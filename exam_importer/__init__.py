"""
Exam importer core package.

The parsing subsystem turns plain exam text into parts, questions, options
and reconciled answers. Around it sit dataclasses for import jobs and stored
exams, storage helpers, a repository boundary, and a worker that drives an
import through precheck, parse and ingestion phases.
"""
