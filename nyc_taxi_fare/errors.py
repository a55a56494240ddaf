class TaxiFareError(Exception):
    pass


class MissingColumnsError(TaxiFareError):
    def __init__(self, columns, source=None):
        self.columns = list(columns)
        self.source = source
        where = " in %s" % source if source else ""
        super().__init__("missing required columns%s: %s" % (where, ", ".join(self.columns)))


class EmptyDatasetError(TaxiFareError):
    def __init__(self, stage):
        self.stage = stage
        super().__init__("no rows left after '%s'" % stage)
