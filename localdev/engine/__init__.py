"""External command execution, readiness polling and template rendering"""
