"""Pure domain layer: value objects, lifecycle workflow, DTOs, clock."""
