"""Dependency graph: builder, cycle detector, topological sorter.

Edges always point from the task that has a dependency to the task it
depends on. Orders always place prerequisites first.
"""
