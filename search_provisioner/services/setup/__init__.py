"""Setup (provisioning) services.

This package contains helpers that *configure* the data plane of a freshly
provisioned project (inference endpoints, index mappings).
"""
