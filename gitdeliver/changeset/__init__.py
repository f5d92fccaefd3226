"""Change-set construction for gitdeliver.

This package turns generated modules into directives:
- models: Module, Literal, Tombstone, WriteIfAbsent, Directive, ChangeSet
- policy: Classification, ProtectionConfig, ProtectionRule, ProtectionPolicy,
          build_protection_rules, classify
- builder: build_change_set, quarantine_path
- validation: validate_module_path, validate_modules
"""

# Models
from gitdeliver.changeset.models import (
    ChangeSet,
    Directive,
    Literal,
    Module,
    Tombstone,
    WriteIfAbsent,
    describe_directive,
)

# Protection policy
from gitdeliver.changeset.policy import (
    Classification,
    ProtectionConfig,
    ProtectionPolicy,
    ProtectionRule,
    build_protection_rules,
    classify,
)

# Builder
from gitdeliver.changeset.builder import (
    build_change_set,
    quarantine_path,
)

# Validation
from gitdeliver.changeset.validation import (
    validate_module_path,
    validate_modules,
)


__all__ = [
    # Models
    "ChangeSet",
    "Directive",
    "Literal",
    "Module",
    "Tombstone",
    "WriteIfAbsent",
    "describe_directive",
    # Policy
    "Classification",
    "ProtectionConfig",
    "ProtectionPolicy",
    "ProtectionRule",
    "build_protection_rules",
    "classify",
    # Builder
    "build_change_set",
    "quarantine_path",
    # Validation
    "validate_module_path",
    "validate_modules",
]
