from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Holding(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    symbol: str = Field(min_length=1)
    provider_id: str = Field(
        min_length=1,
        validation_alias=AliasChoices("providerId", "provider_id", "coinGeckoId"),
        serialization_alias="providerId",
    )
    amount: float = Field(gt=0, strict=True, allow_inf_nan=False)


class Portfolio(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    holdings: list[Holding]

    @property
    def provider_ids(self) -> list[str]:
        """Provider ids in holding order, without duplicates."""
        return list(dict.fromkeys(h.provider_id for h in self.holdings))
