from pydantic import BaseModel, Field


class ValueRange(BaseModel):
    min: float
    max: float


class ValuationEstimate(BaseModel):
    method: str
    factor: float = Field(..., description="Median multiple, growth premium fraction, or risk discount fraction")
    valuation: float
    range: ValueRange
    confidence: float = Field(..., ge=0.0, le=1.0)
    confidence_explanation: str


class ValuationResult(BaseModel):
    revenue_multiple: ValuationEstimate
    growth_adjusted: ValuationEstimate
    risk_adjusted: ValuationEstimate
    revenue: float = Field(..., description="Normalized annual revenue the multiples were applied to")
    comparable_count: int = Field(0, description="Comparables with a usable EV/Revenue multiple")
    used_default_multiple: bool = False

    def estimates(self) -> list[ValuationEstimate]:
        return [self.revenue_multiple, self.growth_adjusted, self.risk_adjusted]
