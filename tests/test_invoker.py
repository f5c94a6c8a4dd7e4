import logging
import subprocess

import pytest

from postsubmit.errors import BuildError
from postsubmit.pipeline.invoker import IMAGE_TAG_TEMPLATE, BuildInvoker, BuildParameters

PARAMS = BuildParameters(
    target="release",
    release_branch="1-19",
    release="4",
    development=True,
    region="us-east-1",
    account_id="123456789012",
    base_image="public.ecr.aws/base:latest",
    image_repo="public.ecr.aws/eks-distro",
    go_runner_image="go-runner:v1",
    kube_proxy_base="kube-proxy-base:v1",
    artifact_bucket="artifacts",
)


def test_make_args_order():
    assert PARAMS.make_args() == [
        "RELEASE_BRANCH=1-19",
        "RELEASE=4",
        "DEVELOPMENT=true",
        "AWS_REGION=us-east-1",
        "AWS_ACCOUNT_ID=123456789012",
        "BASE_IMAGE=public.ecr.aws/base:latest",
        "IMAGE_REPO=public.ecr.aws/eks-distro",
        "GO_RUNNER_IMAGE=go-runner:v1",
        "KUBE_PROXY_BASE_IMAGE=kube-proxy-base:v1",
        "IMAGE_TAG='$(GIT_TAG)-$(PULL_BASE_SHA)'",
    ]


def test_make_args_are_deterministic_and_tag_last():
    defaults = BuildParameters()

    assert defaults.make_args() == defaults.make_args()
    assert defaults.make_args()[-1] == f"IMAGE_TAG={IMAGE_TAG_TEMPLATE}"
    assert "DEVELOPMENT=false" in defaults.make_args()
    assert not any(arg.startswith("ARTIFACT") for arg in PARAMS.make_args())


def test_command_targets_project_directory():
    invoker = BuildInvoker("/repo", PARAMS)

    cmd = invoker.command("coredns/coredns")

    assert cmd[:4] == ["make", "-C", "/repo/projects/coredns/coredns", "release"]
    assert cmd[4:] == PARAMS.make_args()


def test_dry_run_logs_without_running(fake_runner, caplog):
    caplog.set_level(logging.INFO)
    runner = fake_runner()
    invoker = BuildInvoker("/repo", PARAMS, dry_run=True, runner=runner)

    invoker.build("etcd-io/etcd")

    assert runner.calls == []
    assert "Executing: make -C /repo/projects/etcd-io/etcd release RELEASE_BRANCH=1-19" in caplog.text
    assert "IMAGE_TAG='$(GIT_TAG)-$(PULL_BASE_SHA)'" in caplog.text


def test_build_streams_to_parent_and_checks_status(fake_runner):
    runner = fake_runner()
    BuildInvoker("/repo", PARAMS, runner=runner).build("etcd-io/etcd")

    (cmd, kwargs), = runner.calls
    assert cmd == BuildInvoker("/repo", PARAMS).command("etcd-io/etcd")
    assert kwargs == {"stdout": None, "stderr": None, "check": True}


def test_build_failure_raises_build_error(fake_runner):
    runner = fake_runner(fail_on="etcd-io/etcd")

    with pytest.raises(BuildError) as excinfo:
        BuildInvoker("/repo", PARAMS, runner=runner).build("etcd-io/etcd")

    assert excinfo.value.project == "etcd-io/etcd"
    assert isinstance(excinfo.value.cause, subprocess.CalledProcessError)
    assert excinfo.value.command[0] == "make"


def test_missing_build_tool_raises_build_error():
    def runner(cmd, **kwargs):
        raise FileNotFoundError("make")

    with pytest.raises(BuildError):
        BuildInvoker("/repo", PARAMS, runner=runner).build("etcd-io/etcd")


def test_build_error_names_the_failing_command():
    def runner(cmd, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", "make")

    with pytest.raises(BuildError) as excinfo:
        BuildInvoker("/repo", PARAMS, runner=runner).build("etcd-io/etcd")

    message = str(excinfo.value)
    assert "error building etcd-io/etcd" in message
    assert "make -C /repo/projects/etcd-io/etcd release" in message
