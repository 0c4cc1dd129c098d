"""
Core import engine: grammar, planners, resolver, executor and reporter.
"""
