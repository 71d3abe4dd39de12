"""Filesystem helpers: hosts file and leftover sweeping"""
