from safe_java_runner import normalize
from safe_java_runner.normalizer import declares_entry_class


def test_bare_statement_is_wrapped() -> None:
    source = 'System.out.println("hi");'
    wrapped = normalize(source)
    assert wrapped.startswith("public class Main {")
    assert "public static void main(String[] args) {" in wrapped
    assert source in wrapped
    assert wrapped.rstrip().endswith("}")


def test_declared_entry_class_passes_through_unchanged() -> None:
    source = "public class Main {\n  public static void main(String[] a) { }\n}\n"
    assert normalize(source) == source


def test_package_private_entry_class_passes_through() -> None:
    source = "class Main { public static void main(String[] a) { } }"
    assert normalize(source) == source


def test_mentions_in_comments_and_strings_do_not_count() -> None:
    source = '// class Main lives elsewhere\nSystem.out.println("class Main");'
    assert declares_entry_class(source) is False
    assert normalize(source).startswith("public class Main {")


def test_longer_class_names_do_not_count() -> None:
    assert declares_entry_class("class MainHelper { }") is False


def test_braces_in_user_code_survive_wrapping() -> None:
    source = "for (int i = 0; i < 2; i++) { System.out.println(i); }"
    assert source in normalize(source)


def test_custom_entry_class() -> None:
    assert normalize("int x = 1;", entry_class="Program").startswith("public class Program {")
    assert declares_entry_class("public class Program {}", "Program") is True
