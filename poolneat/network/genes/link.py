class Link:
    """Represents a weighted connection between two nodes.

    A weight of exactly 0.0 marks a soft-deleted link: it stays in the
    topology but contributes nothing.
    """
    def __init__(self, id: int, source: int, target: int, weight: float = 0.0):
        self.id = id
        self.source = source
        self.target = target
        self.weight = weight

    @property
    def enabled(self) -> bool:
        return self.weight != 0.0

    def copy(self) -> "Link":
        return Link(self.id, self.source, self.target, self.weight)

    def __repr__(self):
        status = "E" if self.enabled else "D"
        return f"Link({self.source}->{self.target}, w={self.weight:.2f}, {status})"
