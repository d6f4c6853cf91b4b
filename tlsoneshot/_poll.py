from collections import defaultdict


EVENT_READ  = 0x_0001 # EPOLLIN pylint: disable=C0326
EVENT_WRITE = 0x_0004 # EPOLLOUT pylint: disable=C0326
EVENT_ERROR = 0x_0008 # EPOLLERR pylint: disable=C0326
EVENT_HUP   = 0x_0010 # EPOLLHUP pylint: disable=C0326

# EPOLLRDHUP | EPOLLERR | EPOLLHUP. Always reported, requested anyway for clarity.
_EVENT_ALWAYS = 0x_2018
# Registration is disabled after first event and must be re-armed with modify.
_EVENT_ONESHOT = 1 << 30


class _SelectFakeEPoll:
    __slots__ = ('_eventmasks', )

    def __init__(self):
        self._eventmasks = {}

    def register(self, fileno, eventmask):
        self._eventmasks[fileno] = eventmask

    def unregister(self, fileno):
        self._eventmasks.pop(fileno, None)

    def modify(self, fileno, eventmask):
        self._eventmasks[fileno] = eventmask

    def poll(self, timeout):
        from select import select

        rlist = [fileno for fileno, eventmask in self._eventmasks.items() if eventmask & EVENT_READ]
        wlist = [fileno for fileno, eventmask in self._eventmasks.items() if eventmask & EVENT_WRITE]
        # Exceptional conditions are watched for every registered descriptor, as epoll always reports errors.
        xlist = list(self._eventmasks)

        rlist, wlist, xlist = select(rlist, wlist, xlist, timeout)

        events = defaultdict(int)

        for fileno in rlist:
            events[fileno] |= EVENT_READ

        for fileno in wlist:
            events[fileno] |= EVENT_WRITE

        for fileno in xlist:
            events[fileno] |= EVENT_ERROR

        return events.items()

    def close(self):
        self._eventmasks.clear()


class _PollFakeEPoll:
    __slots__ = ('_poll', )

    def __init__(self, poll_obj):
        self._poll = poll_obj

    def register(self, fileno, eventmask):
        self._poll.register(fileno, eventmask & ~_EVENT_ONESHOT)

    def unregister(self, fileno):
        self._poll.unregister(fileno)

    def modify(self, fileno, eventmask):
        self._poll.modify(fileno, eventmask & ~_EVENT_ONESHOT)

    def poll(self, timeout):
        # select.poll accepts milliseconds, epoll accepts seconds.
        return self._poll.poll(None if timeout is None else timeout * 1000)

    def close(self):
        pass


class Poller:
    __slots__ = '_poller', '_technology'

    def __init__(self, technology=None):
        # Only epoll supports one-shot mode. Both poll and select are level-triggered, \
        # re-arming after every event makes them behave the same way for single registration.
        if technology:
            technologies = [technology, 'epoll', 'poll', 'select']
        else:
            technologies = ['epoll', 'poll', 'select']

        self._poller = None
        self._technology = None

        for tech in technologies:
            if tech == 'epoll':
                try:
                    from select import epoll

                    self._poller = epoll(1)
                    self._technology = tech
                    break
                except ImportError:
                    pass
            elif tech == 'poll':
                try:
                    from select import poll

                    self._poller = _PollFakeEPoll(poll())
                    self._technology = tech
                    break
                except ImportError:
                    pass
            elif tech == 'select':
                self._poller = _SelectFakeEPoll()
                self._technology = tech
                break

        if not self._poller:
            self._poller = _SelectFakeEPoll()
            self._technology = 'select'

    @property
    def technology(self):
        return self._technology

    def register(self, fileno, event_mask):
        self._poller.register(fileno, _EVENT_ALWAYS | _EVENT_ONESHOT | event_mask)

    def modify(self, fileno, event_mask):
        self._poller.modify(fileno, _EVENT_ALWAYS | _EVENT_ONESHOT | event_mask)

    def unregister(self, fileno):
        self._poller.unregister(fileno)

    def poll(self, timeout=None):
        # Negative timeout means infinite for epoll, None means infinite for the rest.
        if timeout is None and self._technology == 'epoll':
            timeout = -1

        return list(self._poller.poll(timeout))

    def close(self):
        self._poller.close()
