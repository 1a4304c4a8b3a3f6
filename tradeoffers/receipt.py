"""Извлечение предметов со страницы квитанции /trade/{id}/receipt/.

Страница регистрирует предметы блоком скрипта вида::

    var oItem;
    oItem = {"id":"4242","classid":"10","instanceid":"0","name":"Widget"};
    oItem.appid = 730;
    oItem.contextid = 2;
    oItem.amount = 1;
    oItem.is_stackable = oItem.amount > 1;
    BuildHover( 'item0', oItem, UserYou );
    $('item0').show();

Скрипт не исполняется. Небольшой парсер понимает только эту форму:
объявления var, присваивания переменным и свойствам, литералы,
чтение свойств, сравнения и вызовы BuildHover(...) и $(...).show().
"""
import re
from typing import Dict, List, Optional

from .exceptions import ReceiptFormatError, SessionError

FRAGMENT_RE = re.compile(r'(var oItem;.*?)</script>', re.S)

TOKEN_RE = re.compile(r'''
    (?P<space>\s+|//[^\n]*|/\*.*?\*/)
  | (?P<string>"(?:[^"\\\n]|\\.)*"|'(?:[^'\\\n]|\\.)*')
  | (?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
  | (?P<name>[A-Za-z_$][A-Za-z0-9_$]*)
  | (?P<punct>===|!==|==|!=|>=|<=|[{}\[\]().,:;=<>-])
''', re.S | re.X)

ESCAPE_RE = re.compile(r'\\(u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|.)', re.S)
SIMPLE_ESCAPES = {'n': '\n', 't': '\t', 'r': '\r', 'b': '\b', 'f': '\f', 'v': '\v', '0': '\0'}

KEYWORDS = {'true': True, 'false': False, 'null': None, 'undefined': None}


class _Token:
    __slots__ = ('kind', 'value', 'pos')

    def __init__(self, kind, value, pos):
        self.kind = kind
        self.value = value
        self.pos = pos

    def __repr__(self):
        return f"{self.kind}:{self.value!r}@{self.pos}"


def _unescape(match) -> str:
    seq = match.group(1)
    if seq[0] in 'ux' and len(seq) > 1:
        return chr(int(seq[1:], 16))
    return SIMPLE_ESCAPES.get(seq, seq)


def _decode_string(text: str) -> str:
    value = ESCAPE_RE.sub(_unescape, text)
    # пары \uD83D\uDD2A склеиваются в один символ, как в JSON
    try:
        return value.encode('utf-16', 'surrogatepass').decode('utf-16')
    except UnicodeDecodeError:
        return value


def tokenize(source: str) -> List[_Token]:
    tokens = []
    pos = 0
    while pos < len(source):
        match = TOKEN_RE.match(source, pos)
        if not match:
            raise ReceiptFormatError(f"Unexpected character {source[pos]!r} at {pos}")
        kind = match.lastgroup
        text = match.group()
        if kind == 'string':
            tokens.append(_Token('string', _decode_string(text[1:-1]), pos))
        elif kind == 'number':
            value = float(text) if any(c in text for c in '.eE') else int(text)
            tokens.append(_Token('number', value, pos))
        elif kind != 'space':
            tokens.append(_Token(kind, text, pos))
        pos = match.end()
    tokens.append(_Token('eof', None, pos))
    return tokens


class _Element:
    """Заглушка для $(...): умеет только show()"""

    def show(self):
        return None


class _Builtin:
    def __init__(self, name, func):
        self.name = name
        self.func = func


def _compare(op: str, left, right) -> bool:
    if op in ('==', '==='):
        return left == right
    if op in ('!=', '!=='):
        return left != right
    try:
        if isinstance(left, str) != isinstance(right, str):
            left, right = float(left), float(right)
        if op == '>':
            return left > right
        if op == '<':
            return left < right
        if op == '>=':
            return left >= right
        return left <= right
    except (TypeError, ValueError):
        return False


class FragmentInterpreter:
    """Разбирает и сразу выполняет фрагмент, собирая предметы из BuildHover"""

    def __init__(self, source: str):
        self.tokens = tokenize(source)
        self.index = 0
        self.items: List[Dict] = []
        self.scope: Dict[str, object] = {
            'UserYou': None,
            'BuildHover': _Builtin('BuildHover', self._build_hover),
            '$': _Builtin('$', lambda *args: _Element()),
        }

    def _build_hover(self, label=None, item=None, *rest):
        self.items.append(item)

    # --- токены

    @property
    def current(self) -> _Token:
        return self.tokens[self.index]

    def _advance(self) -> _Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def _check(self, kind: str, value: Optional[str] = None) -> bool:
        token = self.current
        return token.kind == kind and (value is None or token.value == value)

    def _accept(self, kind: str, value: Optional[str] = None) -> bool:
        if self._check(kind, value):
            self.index += 1
            return True
        return False

    def _expect(self, kind: str, value: Optional[str] = None) -> _Token:
        if not self._check(kind, value):
            expected = value or kind
            raise ReceiptFormatError(f"Expected {expected!r}, got {self.current!r}")
        return self._advance()

    # --- инструкции

    def run(self) -> List[Dict]:
        while not self._check('eof'):
            self._statement()
        return self.items

    def _statement(self):
        if self._accept('punct', ';'):
            return
        if self._accept('name', 'var'):
            while True:
                name = self._expect('name').value
                self.scope[name] = self._expression() if self._accept('punct', '=') else None
                if not self._accept('punct', ','):
                    break
            self._end_statement()
            return

        target = self._postfix()
        if self._accept('punct', '='):
            value = self._expression()
            self._assign(target, value)
        elif target[0] != 'call':
            raise ReceiptFormatError(f"Expression statement without effect at {self.current.pos}")
        self._end_statement()

    def _end_statement(self):
        if not (self._accept('punct', ';') or self._check('eof')):
            raise ReceiptFormatError(f"Expected ';', got {self.current!r}")

    def _assign(self, target, value):
        kind = target[0]
        if kind == 'var':
            self.scope[target[1]] = value
        elif kind == 'member':
            obj, key = target[1], target[2]
            if not isinstance(obj, dict):
                raise ReceiptFormatError(f"Cannot set property {key!r} of {type(obj).__name__}")
            obj[key] = value
        else:
            raise ReceiptFormatError("Invalid assignment target")

    # --- выражения

    def _expression(self):
        left = self._value(self._postfix())
        if self._check('punct') and self.current.value in ('>', '<', '>=', '<=', '==', '!=', '===', '!=='):
            op = self._advance().value
            right = self._value(self._postfix())
            return _compare(op, left, right)
        return left

    def _value(self, ref):
        kind = ref[0]
        if kind == 'var':
            if ref[1] not in self.scope:
                raise ReceiptFormatError(f"{ref[1]} is not defined")
            return self.scope[ref[1]]
        if kind == 'member':
            obj, key = ref[1], ref[2]
            if isinstance(obj, dict):
                return obj.get(key)
            if isinstance(obj, list) and isinstance(key, int):
                return obj[key] if 0 <= key < len(obj) else None
            if isinstance(obj, _Element) and key == 'show':
                return _Builtin('show', obj.show)
            raise ReceiptFormatError(f"Cannot read property {key!r} of {type(obj).__name__}")
        return ref[1]

    def _postfix(self):
        """Возвращает ссылку: ('var', name) | ('member', obj, key) | ('value', v) | ('call', v)"""
        ref = self._primary()
        while True:
            if self._accept('punct', '.'):
                ref = ('member', self._value(ref), self._expect('name').value)
            elif self._accept('punct', '['):
                key = self._expression()
                self._expect('punct', ']')
                ref = ('member', self._value(ref), key)
            elif self._accept('punct', '('):
                func = self._value(ref)
                args = self._arguments()
                if not isinstance(func, _Builtin):
                    raise ReceiptFormatError(f"Call of a non-function at {self.current.pos}")
                ref = ('call', func.func(*args))
            else:
                return ref

    def _arguments(self) -> list:
        args = []
        if self._accept('punct', ')'):
            return args
        while True:
            args.append(self._expression())
            if self._accept('punct', ')'):
                return args
            self._expect('punct', ',')

    def _primary(self):
        token = self._advance()
        if token.kind in ('string', 'number'):
            return ('value', token.value)
        if token.kind == 'name':
            if token.value in KEYWORDS:
                return ('value', KEYWORDS[token.value])
            return ('var', token.value)
        if token.kind == 'punct':
            if token.value == '-' and self._check('number'):
                return ('value', -self._advance().value)
            if token.value == '{':
                return ('value', self._object())
            if token.value == '[':
                return ('value', self._array())
            if token.value == '(':
                value = self._expression()
                self._expect('punct', ')')
                return ('value', value)
        raise ReceiptFormatError(f"Unexpected token {token!r}")

    def _object(self) -> Dict:
        obj = {}
        if self._accept('punct', '}'):
            return obj
        while True:
            key = self._advance()
            if key.kind not in ('string', 'name', 'number'):
                raise ReceiptFormatError(f"Invalid object key {key!r}")
            self._expect('punct', ':')
            obj[str(key.value)] = self._expression()
            if self._accept('punct', '}'):
                return obj
            self._expect('punct', ',')
            # висячая запятая
            if self._accept('punct', '}'):
                return obj

    def _array(self) -> list:
        values = []
        if self._accept('punct', ']'):
            return values
        while True:
            values.append(self._expression())
            if self._accept('punct', ']'):
                return values
            self._expect('punct', ',')
            if self._accept('punct', ']'):
                return values


def extract_fragment(body: str) -> str:
    match = FRAGMENT_RE.search(body or '')
    if not match:
        raise SessionError("No session")
    return match.group(1)


def run_fragment(fragment: str) -> List[Dict]:
    return FragmentInterpreter(fragment).run()


def extract_items(body: str) -> List[Dict]:
    """Список предметов в порядке вызовов BuildHover"""
    return run_fragment(extract_fragment(body))
