"""
Permissions and Roles Configuration
This config defines the permission matrix for all modules and the kitchen roles
that grant them. A user holds one or more roles per kitchen (user_kitchen_roles);
the permissions of a user in a kitchen are the union of the permissions of those roles.
"""
from enum import Enum


class Role(str, Enum):
    ADMIN = "ADMIN"
    SUPERVISORA = "SUPERVISORA"
    NUTRICIONISTA = "NUTRICIONISTA"
    AUX_ADM = "AUX_ADM"


ROLE_LABELS = {
    Role.ADMIN: "Admin",
    Role.SUPERVISORA: "Supervisora",
    Role.NUTRICIONISTA: "Nutricionista",
    Role.AUX_ADM: "Aux. Adm",
}

# Define modules and their actions
MODULES = {
    "kitchens": {
        "resource": "kitchens",
        "actions": ["create", "read", "update", "delete", "manage_members"],
        "description": "Kitchen (tenant) management"
    },
    "profiles": {
        "resource": "profiles",
        "actions": ["create", "read", "update"],
        "description": "User profile and work schedule management"
    },
    "projects": {
        "resource": "projects",
        "actions": ["create", "read", "update", "delete"],
        "description": "Project management"
    },
    "tasks": {
        "resource": "tasks",
        "actions": ["create", "read", "update", "delete", "assign"],
        "description": "Task and kanban management"
    },
    "comments": {
        "resource": "comments",
        "actions": ["create", "read"],
        "description": "Task comments"
    },
    "files": {
        "resource": "files",
        "actions": ["read", "upload", "delete"],
        "description": "Project and task attachments"
    },
    "audit": {
        "resource": "audit",
        "actions": ["read"],
        "description": "Audit log"
    },
    "reminders": {
        "resource": "reminders",
        "actions": ["read", "trigger"],
        "description": "WhatsApp task reminders"
    },
    "whatsapp": {
        "resource": "whatsapp",
        "actions": ["send", "test"],
        "description": "WhatsApp notifications"
    },
    "assistants": {
        "resource": "assistants",
        "actions": ["create", "read", "update", "delete", "chat"],
        "description": "Kitchen AI assistants"
    },
    "contracts": {
        "resource": "contracts",
        "actions": ["read", "upload", "delete"],
        "description": "Kitchen contracts available to assistants"
    },
    "reports": {
        "resource": "reports",
        "actions": ["read"],
        "description": "Dashboards and reports"
    },
}

# Actions granted per role and module. ADMIN gets every action of every module.
ROLE_TYPES = {
    Role.ADMIN: {
        "modules": "*",
        "description": "Full administrative access to the kitchen"
    },
    Role.SUPERVISORA: {
        "modules": {
            "kitchens": ["read"],
            "profiles": ["read", "update"],
            "projects": ["create", "read", "update", "delete"],
            "tasks": ["create", "read", "update", "delete", "assign"],
            "comments": ["create", "read"],
            "files": ["read", "upload", "delete"],
            "reminders": ["read"],
            "whatsapp": ["send"],
            "assistants": ["read", "chat"],
            "contracts": ["read"],
            "reports": ["read"],
        },
        "description": "Supervises projects and delegates tasks"
    },
    Role.NUTRICIONISTA: {
        "modules": {
            "kitchens": ["read"],
            "profiles": ["read"],
            "projects": ["create", "read", "update"],
            "tasks": ["create", "read", "update"],
            "comments": ["create", "read"],
            "files": ["read", "upload"],
            "assistants": ["read", "chat"],
            "contracts": ["read"],
            "reports": ["read"],
        },
        "description": "Works on projects and tasks"
    },
    Role.AUX_ADM: {
        "modules": {
            "kitchens": ["read"],
            "profiles": ["read"],
            "projects": ["read"],
            "tasks": ["read", "update"],
            "comments": ["create", "read"],
            "files": ["read", "upload"],
            "assistants": ["read", "chat"],
        },
        "description": "Administrative assistant with read access"
    },
}


def get_permission_matrix():
    """
    Returns a dictionary with all permissions and the permissions of each role
    Format: {
        "permissions": [
            {"name": "projects:create", "resource": "projects", "action": "create", "description": "..."},
            ...
        ],
        "roles": {
            "ADMIN": ["assistants:chat", ...],
            ...
        }
    }
    """
    permissions = []
    for module_config in MODULES.values():
        resource = module_config["resource"]
        for action in module_config["actions"]:
            permissions.append({
                "name": f"{resource}:{action}",
                "resource": resource,
                "action": action,
                "description": f"{action.capitalize()} {resource}"
            })

    roles = {}
    for role, role_config in ROLE_TYPES.items():
        role_permissions = []
        for module_name, module_config in MODULES.items():
            if role_config["modules"] == "*":
                actions = module_config["actions"]
            else:
                actions = role_config["modules"].get(module_name, [])
            for action in actions:
                if action in module_config["actions"]:
                    role_permissions.append(f"{module_config['resource']}:{action}")
        roles[role.value] = sorted(role_permissions)

    return {
        "permissions": permissions,
        "roles": roles
    }


PERMISSION_MATRIX = get_permission_matrix()


def permissions_for_roles(roles) -> set:
    """Union of the permissions granted by the given role names."""
    granted = set()
    for role in roles:
        granted.update(PERMISSION_MATRIX["roles"].get(getattr(role, "value", role), []))
    return granted
