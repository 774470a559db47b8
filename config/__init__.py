"""
Simulation configuration presets
"""
