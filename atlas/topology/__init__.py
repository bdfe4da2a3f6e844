"""
Topology reconstruction: peer reports -> trimmed, deduplicated graph.
"""
from .assembler import AddressIndex, AssemblyResult, GraphAssembler
from .constraints import ConstraintEnforcer

__all__ = ["AddressIndex", "AssemblyResult", "GraphAssembler", "ConstraintEnforcer"]
