"""
CNA modeling tool: architecture entity graphs exported as TOSCA service templates.
"""

__version__ = "0.1.0"
