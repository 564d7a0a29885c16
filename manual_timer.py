class ManualTimer:
    """Stands in for threading.Timer in the tests; fires only when told to."""

    created = []

    def __init__(self, interval, function, args=()):
        self.interval = interval
        self.function = function
        self.args = args
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.finished = False
        ManualTimer.created.append(self)

    @classmethod
    def reset(cls):
        cls.created = []

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.started and not self.cancelled and not self.finished:
            self.finished = True
            self.function(*self.args)
