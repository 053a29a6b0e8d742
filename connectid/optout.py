"""Per-provider opt-out marker kept in the host's key-value store."""

OPT_OUT_KEY = "connectIdOptOut"
OPTED_OUT = "1"


class OptOutFlag:
    """Reads the opt-out marker from a store.

    Only the exact string "1" counts as opted out. A store that cannot
    be read counts as not opted out.
    """

    def __init__(self, store):
        self.store = store

    def read(self) -> bool:
        try:
            return self.store.get_item(OPT_OUT_KEY) == OPTED_OUT
        except Exception:
            return False


def opt_out(store) -> None:
    store.set_item(OPT_OUT_KEY, OPTED_OUT)


def opt_in(store) -> None:
    store.remove_item(OPT_OUT_KEY)
