"""
vpcmaker - Idempotent provisioning of a minimal AWS VPC with bastion hosts.

This package provides a CLI and a small library that finds or creates a VPC,
its internet gateway, a public route table, subnets and one bastion host per
subnet, and tears all of it down again.
"""

__version__ = "0.1.0"
