"""Device layer.

Wrappers around the external programs that drive the changer: mtx for the
carousel, df for mount detection and dvdbackup for extraction. Everything
above this package talks in slots, drives and command outcomes.
"""
