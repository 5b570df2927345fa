import io
import os
import logging
from abc import ABC, abstractmethod
from typing import BinaryIO
from collections import OrderedDict
from collections.abc import Mapping, MutableMapping

from .util import log

is_tracing = os.environ.get('TRACE') == '1' and log.isEnabledFor(logging.DEBUG)
trace = log.debug if is_tracing else lambda *_: None

DEFAULT_MIME_TYPE = 'text/html'
DEFAULT_ENCODING = 'utf-8'


class ExecutionSink(ABC):
    '''
    Everything the engine needs from its host.

    The engine only writes output and touches the three parameter maps through
    this interface, so a sink can be backed by an HTTP response, a file, or a
    plain buffer in tests.
    '''

    @abstractmethod
    def write(self, data: str | bytes):
        pass

    @abstractmethod
    def get_parameter(self, name: str) -> str | None:
        pass

    @abstractmethod
    def get_persistent_parameter(self, name: str) -> str | None:
        pass

    @abstractmethod
    def set_persistent_parameter(self, name: str, value: str):
        pass

    @abstractmethod
    def remove_persistent_parameter(self, name: str):
        pass

    @abstractmethod
    def get_temporary_parameter(self, name: str) -> str | None:
        pass

    @abstractmethod
    def set_temporary_parameter(self, name: str, value: str):
        pass

    @abstractmethod
    def remove_temporary_parameter(self, name: str):
        pass

    @abstractmethod
    def set_mime_type(self, mime: str):
        pass


LRU_CAPACITY = 128


class LRUDict(MutableMapping[str, str]):
    def __init__(self, capacity: int = LRU_CAPACITY):
        self._data = OrderedDict()
        self._capacity = capacity

    def __contains__(self, key) -> bool:
        return key in self._data

    def __getitem__(self, key: str) -> str:
        self._data.move_to_end(key)
        return self._data[key]

    def __setitem__(self, key: str, value: str) -> None:
        trace('PM set: %s = %r', key, value)
        self._data[key] = value
        self._data.move_to_end(key)
        if len(self._data) > self._capacity:
            self._data.popitem(last=False)

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self):
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def clear(self) -> None:
        return self._data.clear()

    def items(self):
        return self._data.items()


class RequestContext(ExecutionSink):
    def __init__(
        self,
        output: BinaryIO | None = None,
        parameters: Mapping[str, str] | None = None,
        persistent: MutableMapping[str, str] | None = None,
        *,
        encoding: str = DEFAULT_ENCODING,
    ):
        self._own_output = output is None
        self.output: BinaryIO = io.BytesIO() if output is None else output
        self.parameters: Mapping[str, str] = {} if parameters is None else parameters
        self.persistent: MutableMapping[str, str] = (
            LRUDict() if persistent is None else persistent
        )
        self.temporary: dict[str, str] = {}
        self.encoding = encoding
        self.mime_type = DEFAULT_MIME_TYPE

    def write(self, data: str | bytes):
        if isinstance(data, str):
            data = data.encode(self.encoding)
        self.output.write(data)

    # Only meaningful for the default in-memory buffer.
    def getvalue(self) -> str:
        if not self._own_output:
            raise ValueError('output is not an in-memory buffer')
        assert isinstance(self.output, io.BytesIO)
        return self.output.getvalue().decode(self.encoding)

    def get_parameter(self, name: str) -> str | None:
        return self.parameters.get(name)

    def get_persistent_parameter(self, name: str) -> str | None:
        return self.persistent.get(name)

    def set_persistent_parameter(self, name: str, value: str):
        self.persistent[name] = value

    def remove_persistent_parameter(self, name: str):
        self.persistent.pop(name, None)

    def get_temporary_parameter(self, name: str) -> str | None:
        return self.temporary.get(name)

    def set_temporary_parameter(self, name: str, value: str):
        trace('TM set: %s = %r', name, value)
        self.temporary[name] = value

    def remove_temporary_parameter(self, name: str):
        self.temporary.pop(name, None)

    def set_mime_type(self, mime: str):
        trace('MIME type: %s -> %s', self.mime_type, mime)
        self.mime_type = mime

    def debug(self):
        trace('  mime = %s', self.mime_type)
        for k, v in self.persistent.items():
            trace('  (pm) %s = %r', k, v)
        for k, v in self.temporary.items():
            trace('  (tm) %s = %r', k, v)
