# Types of values that can be attached to log entries as context.

TLiteral = bool | int | float | str | bytes
TComposite = (
	list[TLiteral] | dict[TLiteral, TLiteral] | set[TLiteral] | tuple[TLiteral, ...]
)
TPrimitive = TLiteral | TComposite | list[TLiteral | TComposite] | None

# EOF
