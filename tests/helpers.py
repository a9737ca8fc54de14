import random


class FixedRandom(random.Random):
    """Random source whose random() is pinned to ``value``, for forcing a policy branch."""

    def __init__(self, value: float, seed: int = 0):
        super().__init__(seed)
        self.value = value

    def random(self) -> float:
        return self.value
