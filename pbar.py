import progressbar


class MainProgressbar:

    pbar: progressbar.ProgressBar
    label: str

    def create(self, hunt_type: str, label: str = 'TNEF') -> None:
        pbar_widgets: list = ['%s: ' % hunt_type, progressbar.Percentage(), ' ', progressbar.Bar(
            marker=progressbar.RotatingMarker()), ' ', progressbar.ETA(), progressbar.FormatLabel(' %ss:0' % label)]
        self.label = label
        self.pbar = progressbar.ProgressBar(widgets=pbar_widgets, max_value=100).start()

    def update(self, items_found: int, items_total: int, items_completed: int) -> None:
        self.pbar.widgets[6] = progressbar.FormatLabel(
            ' %ss:%s' % (self.label, items_found))
        if items_total:
            self.pbar.update(min(items_completed * 100.0 / items_total, 100))

    def finish(self) -> None:
        self.pbar.finish()
