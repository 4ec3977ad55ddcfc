from callscribe.cleanup import CleanupStack
from callscribe.errors import DeleteError, MakePublicError


def test_steps_run_last_registered_first_and_all_errors_collected():
    calls = []

    def fail(name):
        def step():
            calls.append(name)
            raise RuntimeError(f"{name} failed")
        return step

    stack = CleanupStack()
    stack.push(fail("make public"), MakePublicError, "original file")
    stack.push(lambda: calls.append("delete left"), DeleteError, "left channel file")
    stack.push(fail("delete right"), DeleteError, "right channel file")

    errors = stack.run()

    assert calls == ["delete right", "delete left", "make public"]
    assert [type(e) for e in errors] == [DeleteError, MakePublicError]
    assert str(errors[0]) == "deleting: right channel file: delete right failed"
    assert stack.run() == []
