"""
Core application: shared base model, exceptions, logging and DRF glue.
"""
