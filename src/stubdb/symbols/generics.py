"""Template parameter binding and substitution for signatures."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from stubdb.core.models import Signature, TemplateParameter
from stubdb.types.algebra import Type
from stubdb.types.transform import substitute_templates


def bind_templates(
    templates: Sequence[TemplateParameter],
    arguments: Sequence[Type] | Mapping[str, Type],
) -> dict[str, Type]:
    """Pair template parameters with type arguments.

    Positional arguments bind in declaration order; surplus arguments are
    ignored. Named arguments bind only templates that exist.
    """
    names = [t.name for t in templates]
    if isinstance(arguments, Mapping):
        return {name: arguments[name] for name in names if name in arguments}
    return dict(zip(names, arguments))


def instantiate_signature(
    signature: Signature,
    bindings: Mapping[str, Type],
    *,
    own_templates: bool = True,
) -> Signature:
    """Substitute template bindings throughout ``signature``.

    With ``own_templates`` the bindings target the signature's own
    ``@template`` parameters, which are then removed from it. Otherwise the
    bindings come from an enclosing class and templates the signature
    redeclares shadow them.
    """
    if own_templates:
        effective = dict(bindings)
    else:
        effective = {k: v for k, v in bindings.items() if signature.template(k) is None}
    if not effective:
        return signature

    def sub(t: Type | None) -> Type | None:
        return None if t is None else substitute_templates(t, effective)

    parameters = [
        p.model_copy(
            update={
                "type": sub(p.type),
                "native_type": sub(p.native_type),
                "out_type": sub(p.out_type),
            }
        )
        for p in signature.parameters
    ]
    templates = signature.templates
    if own_templates:
        templates = [t for t in templates if t.name not in effective]
    return signature.model_copy(
        update={
            "parameters": parameters,
            "return_type": sub(signature.return_type),
            "throws": [sub(t) for t in signature.throws],
            "assertions": [
                a.model_copy(update={"type": sub(a.type)}) for a in signature.assertions
            ],
            "templates": templates,
        }
    )


def substitute_all(types: Sequence[Type], bindings: Mapping[str, Type]) -> list[Type]:
    return [substitute_templates(t, bindings) for t in types]
