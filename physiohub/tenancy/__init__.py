"""Tenant resolution, schema isolation and schema provisioning."""
