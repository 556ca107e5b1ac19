"""Tool policy layer (env/ConfigMap driven).

Lets admins switch individual read-only tools off (e.g. log access) without
redeploying a different build.
"""
