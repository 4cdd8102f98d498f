from typing import Callable

from simpleeval import SimpleEval, InvalidExpression

from .engine import Abort, Mod

VOWELS = frozenset('aeiouAEIOU')


def capitalize(s: str) -> str:
    return s[:1].upper() + s[1:]


def capitalize_all(s: str) -> str:
    return ' '.join(capitalize(w) for w in s.split(' '))


def a(s: str) -> str:
    if not s:
        return s
    # "a unicorn", "an umbrella"
    if s[0] in 'uU' and len(s) > 2 and s[2] in 'iI':
        return 'a ' + s
    return ('an ' if s[0] in VOWELS else 'a ') + s


def _consonant_y(s: str) -> bool:
    return len(s) > 1 and s[-1] == 'y' and s[-2] not in VOWELS


def s(text: str) -> str:
    if text.endswith(('s', 'sh', 'ch', 'x', 'z')):
        return text + 'es'
    if _consonant_y(text):
        return text[:-1] + 'ies'
    return text + 's'


def ed(text: str) -> str:
    if text.endswith('e'):
        return text + 'd'
    if _consonant_y(text):
        return text[:-1] + 'ied'
    return text + 'ed'


base_english: dict[str, Callable[[str], str]] = {
    'capitalize': capitalize,
    'capitalizeAll': capitalize_all,
    'caps': str.upper,
    'lower': str.lower,
    'a': a,
    's': s,
    'ed': ed,
    'reverse': lambda x: x[::-1],
}


def replace(text: str, args: list[str]) -> str:
    if len(args) != 2:
        raise Abort(f'replace takes 2 parameters, got {len(args)}')
    return text.replace(args[0], args[1])


def _to_number(s: str) -> int | float | str:
    try:
        return int(s)
    except ValueError:
        try:
            return float(s)
        except ValueError:
            return s


def _to_str(v) -> str:
    if isinstance(v, bool):
        return '1' if v else '0'
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return str(v)


def calc(text: str, args: list[str]) -> str:
    '''
    `#n.calc(x + 1)#`: evaluates the arithmetic in the parameter, with `x` bound
    to the text the method is applied to, read as a number when it is one.
    '''
    if len(args) != 1:
        raise Abort(f'calc takes 1 parameter, got {len(args)}')
    ev = SimpleEval(names={'x': _to_number(text)})
    try:
        return _to_str(ev.eval(args[0]))
    except (InvalidExpression, SyntaxError, ArithmeticError, TypeError, ValueError) as e:
        raise Abort(f'calc: {args[0]}: {type(e).__name__}: {e}') from None


base_methods: dict[str, Mod] = {
    'replace': replace,
    'calc': calc,
}
