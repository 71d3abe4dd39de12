"""Wrappers around the external CLIs (k3d, kubectl, helm, docker, argocd, go)"""
