"""
Backend Scripts Module

This module contains utility scripts for configuration checks.

Available scripts:
    - validate_template.py: Validates a workflow step template JSON file
    
Usage:
    python -m scripts.validate_template path/to/template.json
"""
