# printdesk/modules/agents/exceptions.py
# Domain-specific exceptions for the Agents module

from printdesk.core.exceptions import ConflictError, IneligibleStateError, NotFoundError


class AgentNotFoundError(NotFoundError):
    def __init__(self, agent_id: str):
        super().__init__(f"Agent '{agent_id}' not found.")
        self.agent_id = agent_id


class DuplicateAgentError(ConflictError):
    def __init__(self, agent_id: str):
        super().__init__(f"Agent '{agent_id}' already exists.")
        self.agent_id = agent_id


class InvalidStandingChangeError(IneligibleStateError):
    def __init__(self, agent_id: str, current: str, action: str):
        super().__init__(f"Cannot {action} agent '{agent_id}' with standing '{current}'.")
        self.agent_id = agent_id
        self.current = current
        self.action = action
