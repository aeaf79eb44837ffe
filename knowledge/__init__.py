"""
HQMF parser knowledge base.

Contains the lookup tables the data criteria parser is configured with:
- Template identifier definitions
- Value set / result value locations per template
- Field role codes
- Code system names
"""
