# marketplace/domain/selection.py
from dataclasses import dataclass, field
from typing import Iterable, Tuple


@dataclass(frozen=True)
class Selection:
    """
    Wybor klienta dla jednej linii koszyka/zamowienia:
    opcjonalny wariant + zero lub wiecej opcji z grup wyboru.
    Ta sama para (produkt, selection.key) = ta sama linia.
    """

    variant_id: int | None = None
    option_ids: Tuple[int, ...] = field(default_factory=tuple)

    @classmethod
    def of(cls, variant_id: int | None = None, option_ids: Iterable[int] = ()) -> "Selection":
        return cls(variant_id=variant_id, option_ids=tuple(sorted(set(option_ids))))

    @property
    def key(self) -> str:
        # np. "v3|o7,9", pusty string dla produktu bez wyboru
        parts = []
        if self.variant_id is not None:
            parts.append(f"v{self.variant_id}")
        if self.option_ids:
            parts.append("o" + ",".join(str(o) for o in self.option_ids))
        return "|".join(parts)

    @property
    def is_empty(self) -> bool:
        return self.variant_id is None and not self.option_ids
