import abc
import datetime
import pathlib
from typing import Annotated, Any, Protocol, get_args, get_origin

import pytest
from pydantic_settings import BaseSettings

from dikernel._internal.type_checks import SelfBindingPolicy, is_runtime_class, is_settings_class
from dikernel.markers import (
    INJECT_METHOD_ATTR,
    ConstructorScore,
    Injected,
    InjectedMarker,
    Named,
    constructor_marker,
    inject_constructor,
    inject_method,
    is_injected_annotation,
    split_annotation,
)


class Service:
    pass


class AbstractService(abc.ABC):
    @abc.abstractmethod
    def run(self) -> None: ...


class ServiceProtocol(Protocol):
    def run(self) -> None: ...


class Meta(type):
    pass


class Settings(BaseSettings):
    debug: bool = False


class TestInjected:
    def test_injected_wraps_annotated_marker(self) -> None:
        annotation = Injected[Service]

        assert get_origin(annotation) is Annotated
        args = get_args(annotation)
        assert args[0] is Service
        assert isinstance(args[1], InjectedMarker)
        assert is_injected_annotation(annotation)

    def test_injected_keeps_existing_metadata(self) -> None:
        annotation = Injected[Annotated[Service, Named("primary")]]

        inner, metadata = split_annotation(annotation)

        assert inner is Service
        assert metadata[0] == Named("primary")
        assert isinstance(metadata[1], InjectedMarker)

    def test_plain_annotations_are_not_injected(self) -> None:
        assert not is_injected_annotation(Service)
        assert not is_injected_annotation(Annotated[Service, Named("primary")])
        assert split_annotation(Service) == (Service, ())


class TestMemberMarkers:
    def test_inject_constructor_without_arguments(self) -> None:
        class Factory:
            @inject_constructor
            @classmethod
            def create(cls) -> "Factory":
                return cls()

        assert constructor_marker(vars(Factory)["create"]) is True

    def test_inject_constructor_with_score(self) -> None:
        class Factory:
            @inject_constructor(score=ConstructorScore.LOWEST)
            def __init__(self) -> None:
                pass

        assert constructor_marker(Factory.__init__) is ConstructorScore.LOWEST

    def test_unmarked_member(self) -> None:
        assert constructor_marker(Service.__init__) is None

    def test_inject_method(self) -> None:
        @inject_method
        def configure(self: Any) -> None:
            pass

        assert getattr(configure, INJECT_METHOD_ATTR) is True


class TestTypeChecks:
    @pytest.mark.parametrize(
        ("candidate", "expected"),
        [
            (Service, True),
            (Settings, True),
            (AbstractService, False),
            (ServiceProtocol, False),
            (Meta, False),
            (int, False),
            (pathlib.Path, False),
            (datetime.datetime, False),
            (list[int], False),
            ("Service", False),
        ],
    )
    def test_self_binding_policy(self, candidate: object, expected: bool) -> None:
        assert SelfBindingPolicy().is_self_bindable(candidate) is expected

    def test_custom_ignored_base_types(self) -> None:
        policy = SelfBindingPolicy(ignored_base_types=(Service,))

        assert not policy.is_self_bindable(Service)
        assert policy.is_self_bindable(pathlib.PurePath)

    def test_settings_detection(self) -> None:
        assert is_settings_class(Settings)
        assert not is_settings_class(BaseSettings)
        assert not is_settings_class(Service)
        assert not is_settings_class(Settings(debug=True))

    def test_runtime_class_detection(self) -> None:
        assert is_runtime_class(Service)
        assert not is_runtime_class(list[int])
        assert not is_runtime_class(Service())
