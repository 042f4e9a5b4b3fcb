from typing import (
	Optional,
	Iterable,
	Iterator,
	Union,
	Callable,
	cast,
)
from mypy_extensions import KwArg, VarArg

# --
# HTMPL defines functions to create HTML fragments. Text nodes are escaped,
# `raw` nodes are written as-is.

HTML_EMPTY: list[str] = "br hr img input link meta".split()
HTML_ESCAPED = str.maketrans(
	{"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&#x27;"}
)

HTML_QUOTED = str.maketrans({"&": "&amp;", '"': "&quot;"})


def escape(text: str) -> str:
	return text.translate(HTML_ESCAPED)


def quoted(text: Optional[str]) -> str:
	return text.translate(HTML_QUOTED) if text else ""


TNodeContent = Union["Node", str, bool, float, int]
TAttributeContent = Union["Node", str, bool, float, int, None]


class Node:
	__slots__ = ["name", "attributes", "children"]

	def __init__(
		self,
		name: str,
		children: Optional[Iterable[TNodeContent]] = None,
		attributes: Optional[dict[str, TAttributeContent]] = None,
	):
		self.name = name
		self.attributes: dict[str, TAttributeContent] = attributes or {}
		self.children: list[TNodeContent] = [_ for _ in children] if children else []

	def iterHTML(self, *, close: bool = True) -> Iterator[str]:
		"""Yields the HTML for this node. When `close` is false, the closing
		tag is left out, so that the children can be streamed afterwards."""
		if self.name == "#raw":
			yield str(self.attributes.get("#value") or "")
		elif self.name == "#text":
			yield escape(str(self.attributes.get("#value") or ""))
		else:
			yield f"<{self.name}"
			for k, v in (self.attributes or {}).items():
				if v is None:
					yield f" {k}"
				elif isinstance(v, Node) and v.name == "#raw":
					# Raw attribute values are not escaped
					yield f' {k}="{v.attributes.get("#value") or ""}"'
				else:
					yield f' {k}="{quoted(str(v))}"'
			yield ">"
			for _ in self.children:
				if isinstance(_, Node):
					yield from _.iterHTML()
				elif _ is None:
					pass
				else:
					yield str(_)
			if close and self.name not in HTML_EMPTY:
				yield f"</{self.name}>"

	def closing(self) -> str:
		return "" if self.name in HTML_EMPTY else f"</{self.name}>"

	def __str__(self) -> str:
		return "".join(self.iterHTML())


def text(text: str) -> Node:
	return Node("#text", attributes={"#value": text})


def raw(html: str) -> Node:
	return Node("#raw", attributes={"#value": html})


def node(
	name: str,
	children: Optional[Iterable[TNodeContent]] = None,
	attributes: Optional[dict[str, TAttributeContent]] = None,
) -> Node:
	return Node(
		name,
		children=[text(_) if isinstance(_, str) else _ for _ in children or ()],
		attributes=attributes,
	)


NodeFactory = Callable[
	[
		VarArg(TNodeContent),
		KwArg(TAttributeContent),
	],
	Node,
]


def nodeFactory(name: str) -> NodeFactory:
	def f(*children: TNodeContent, **attributes: TAttributeContent) -> Node:
		attrs: dict[str, TAttributeContent] = {}
		for k, v in attributes.items():
			if k == "_":
				attrs["class"] = v
			else:
				attrs[k] = v
		return node(name, children, attrs)

	f.__name__ = name
	return cast(NodeFactory, f)


HTML_TAGS: list[str] = (
	"a body h1 head html li title ul".split()
)


class Markup:
	__slots__ = ["_factories", "_name"]

	def __init__(self, name: str, factories: dict[str, NodeFactory]):
		self._name: str = name
		self._factories: dict[str, NodeFactory] = factories

	def __getattribute__(self, name: str) -> NodeFactory:
		if name.startswith("_"):
			return cast(NodeFactory, super().__getattribute__(name))
		else:
			factories = self._factories
			if name not in factories:
				raise KeyError(
					f"No tag {name}, pick one of {','.join(factories.keys())}"
				)
			else:
				return factories[name]


def markup(name: str, tags: list[str]) -> Markup:
	return Markup(name, {_: nodeFactory(_) for _ in tags})


H: Markup = markup("html", HTML_TAGS)


# EOF
