"""Exceptions raised by the divergence engine."""


class InputShapeError(ValueError):
    """Input OHLCV/time sequences do not share one length.

    Fatal to a single engine call. Soft conditions (warm-up, flat ranges)
    never raise; they surface as undefined values instead.
    """

    def __init__(self, lengths: dict[str, int]):
        self.lengths = dict(lengths)
        detail = ", ".join(f"{name}={n}" for name, n in self.lengths.items())
        super().__init__(f"Input sequences must have equal length, got {detail}")
