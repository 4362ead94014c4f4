"""
Configuration, prompting, step execution and the console entry point for
stack-setup.
"""
