from pydantic import BaseModel


class PlatformStats(BaseModel):
    total_users: int
    users_by_role: dict[str, int]
    verified_contractors: int
    pending_contractors: int
    credits_in_circulation: int
    total_projects: int
    projects_by_status: dict[str, int]
    total_bids: int
    accepted_bids: int
    conversations: int
    unlocks: int


class ContractorStats(BaseModel):
    credit_balance: int
    verification_status: str
    unlocked_projects: int
    bids_submitted: int
    bids_accepted: int
    conversations: int
    open_projects: int


class HomeownerStats(BaseModel):
    total_projects: int
    projects_by_status: dict[str, int]
    bids_received: int
    bids_pending: int
    conversations: int
