from pydantic import BaseModel


class PeriodStatsDTO(BaseModel):
    count: int = 0
    revenue: float = 0.0


class DashboardStatsDTO(BaseModel):
    today: PeriodStatsDTO
    week: PeriodStatsDTO
    month: PeriodStatsDTO
    total: PeriodStatsDTO
