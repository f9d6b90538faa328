import enum


class RoleName(str, enum.Enum):
    STAFF       = "staff"
    ADMIN_IC    = "admin_ic"
    COORDINATOR = "coordinator"
    HEAD_OPS    = "head_ops"
