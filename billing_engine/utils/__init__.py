"""
EaseMail Billing - Utilities Package

Error hierarchy and fixed-point money helpers.
"""
