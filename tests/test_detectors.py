"""Ecosystem detectors, run one directory at a time against real files."""
import json

import pytest

from core.dependency_detector import DependencyDetector
from core.file_provider import FileProvider
from detectors.cocoapods import CocoapodsDetector
from detectors.cplusplus import CplusplusDetector
from detectors.delphi import DelphiDetector
from detectors.deno import DenoDetector
from detectors.docker import DockerDetector
from detectors.dotenv import DotenvDetector
from detectors.dotnet import DotnetDetector
from detectors.github_actions import GithubActionsDetector
from detectors.golang import GolangDetector
from detectors.java import JavaDetector
from detectors.nodejs import NodejsDetector
from detectors.php import PhpDetector
from detectors.python import PythonDetector
from detectors.ruby import RubyDetector
from detectors.rust import RustDetector
from detectors.terraform import TerraformDetector


@pytest.fixture
def run_detector(default_index):
    """Run one detector on `directory` (below `root`) the way the scanner does."""
    def _run(detector, root, directory=None, **options):
        directory = str(directory or root)
        provider = FileProvider(str(root))
        files = [e for e in provider.list_dir(directory) if not e.is_dir]
        deps = DependencyDetector(default_index, **options)
        return detector.detect(files, directory, provider.relative(directory), provider, deps)
    return _run


def _deps(payload):
    return [(d.ecosystem, d.name, d.version, d.scope, d.direct, d.source) for d in payload.dependencies]


REACT_PACKAGE = json.dumps({"name": "web", "dependencies": {"react": "^18.2.0"}})
REACT_LOCK = json.dumps({
    "lockfileVersion": 3,
    "packages": {"": {"name": "web"}, "node_modules/react": {"version": "18.2.1"}},
})


class TestNodejsDetector:
    def test_no_manifest(self, write_tree, run_detector):
        root = write_tree({"index.js": "console.log(1)"})
        assert run_detector(NodejsDetector(), root) == []

    def test_manifest_only(self, write_tree, run_detector):
        root = write_tree({"package.json": REACT_PACKAGE})
        [payload] = run_detector(NodejsDetector(), root)
        assert payload.name == "web"
        assert payload.path == "/"
        assert payload.type == "npm-package"
        assert payload.tech == ["nodejs"]
        assert "react" in payload.techs
        assert payload.reason["nodejs"] == ["matched file: package.json"]
        assert payload.reason["react"] == ["react matched: ^react$"]
        assert payload.properties["package_names"] == {"npm": "web"}
        assert _deps(payload) == [("npm", "react", "^18.2.0", "prod", True, "package.json")]

    def test_lock_file_wins(self, write_tree, run_detector):
        root = write_tree({"package.json": REACT_PACKAGE, "package-lock.json": REACT_LOCK})
        [payload] = run_detector(NodejsDetector(), root)
        assert _deps(payload) == [("npm", "react", "18.2.1", "prod", True, "package-lock.json")]

    def test_lock_files_disabled(self, write_tree, run_detector):
        root = write_tree({"package.json": REACT_PACKAGE, "package-lock.json": REACT_LOCK})
        [payload] = run_detector(NodejsDetector(), root, use_lock_files=False)
        assert _deps(payload) == [("npm", "react", "^18.2.0", "prod", True, "package.json")]

    def test_corrupt_lock_falls_back_to_next_candidate(self, write_tree, run_detector):
        root = write_tree({
            "package.json": REACT_PACKAGE,
            "package-lock.json": "{ not json",
            "yarn.lock": 'react@^18.2.0:\n  version "18.2.0"\n',
        })
        [payload] = run_detector(NodejsDetector(), root)
        assert _deps(payload) == [("npm", "react", "18.2.0", "prod", True, "yarn.lock")]

    def test_corrupt_manifest_keeps_component(self, write_tree, run_detector):
        root = write_tree({"app/package.json": "{oops"})
        [payload] = run_detector(NodejsDetector(), root, root / "app")
        assert payload.name == "app"
        assert payload.path == "/app"
        assert payload.dependencies == []
        assert payload.reason["_"] == ["package.json could not be parsed"]

    def test_transitive_entries_only_on_request(self, write_tree, run_detector):
        lock = json.dumps({
            "lockfileVersion": 3,
            "packages": {
                "node_modules/react": {"version": "18.2.1"},
                "node_modules/loose-envify": {"version": "1.4.0"},
            },
        })
        root = write_tree({"package.json": REACT_PACKAGE, "package-lock.json": lock})
        [payload] = run_detector(NodejsDetector(), root)
        assert [d.name for d in payload.dependencies] == ["react"]
        [payload] = run_detector(NodejsDetector(), root, include_transitive=True)
        assert [(d.name, d.direct) for d in payload.dependencies] == [("react", True), ("loose-envify", False)]


class TestPythonDetector:
    def test_requirements_tag_enclosing_node(self, write_tree, run_detector):
        root = write_tree({"requirements.txt": "flask==3.0.0\npsycopg2-binary\n"})
        [payload] = run_detector(PythonDetector(), root)
        assert payload.is_virtual
        assert payload.reason["python"] == ["matched file: requirements.txt"]
        assert {"python", "flask", "postgresql"} <= set(payload.techs)
        assert _deps(payload)[0] == ("python", "flask", "==3.0.0", "prod", True, "requirements.txt")

    def test_pyproject_with_uv_lock(self, write_tree, run_detector):
        root = write_tree({
            "pyproject.toml": '[project]\nname = "api"\ndependencies = ["FastAPI>=0.110", "httpx"]\n',
            "uv.lock": (
                'version = 1\n\n[[package]]\nname = "api"\nversion = "0.1.0"\nsource = { editable = "." }\n\n'
                '[[package]]\nname = "fastapi"\nversion = "0.110.0"\n'
            ),
        })
        [payload] = run_detector(PythonDetector(), root)
        assert payload.name == "api"
        assert payload.type == "python-package"
        assert payload.tech == ["python"]
        assert "fastapi" in payload.techs
        assert _deps(payload) == [
            ("python", "FastAPI", "0.110.0", "prod", True, "uv.lock"),
            ("python", "httpx", "", "prod", True, "pyproject.toml"),
        ]

    def test_poetry_lock_next_to_pyproject(self, write_tree, run_detector):
        root = write_tree({
            "pyproject.toml": (
                '[tool.poetry]\nname = "api"\n\n[tool.poetry.dependencies]\n'
                'python = "^3.11"\nfastapi = "^0.110"\nhttpx = "^0.27"\n'
            ),
            "poetry.lock": (
                '[[package]]\nname = "fastapi"\nversion = "0.110.0"\n\n'
                '[[package]]\nname = "starlette"\nversion = "0.36.3"\n'
            ),
        })
        [payload] = run_detector(PythonDetector(), root)
        assert payload.name == "api"
        assert _deps(payload) == [
            ("python", "fastapi", "0.110.0", "prod", True, "poetry.lock"),
            ("python", "httpx", "^0.27", "prod", True, "pyproject.toml"),
        ]


class TestJavaDetector:
    POM = """<project xmlns="http://maven.apache.org/POM/4.0.0">
  <groupId>com.acme</groupId>
  <artifactId>billing</artifactId>
  <dependencies>
    <dependency><groupId>org.postgresql</groupId><artifactId>postgresql</artifactId><version>42.7.1</version></dependency>
  </dependencies>
</project>"""

    def test_maven_project(self, write_tree, run_detector):
        root = write_tree({"pom.xml": self.POM})
        [payload] = run_detector(JavaDetector(), root)
        assert payload.name == "billing"
        assert payload.type == "maven-project"
        assert payload.tech == ["java"]
        assert {"maven", "postgresql"} <= set(payload.techs)
        assert payload.properties["package_names"] == {"maven": "com.acme:billing"}

    def test_gradle_only_project_named_by_settings(self, write_tree, run_detector):
        root = write_tree({
            "settings.gradle": "rootProject.name = 'ledger'\n",
            "build.gradle": "dependencies {\n    implementation 'org.postgresql:postgresql:42.7.1'\n}\n",
        })
        [payload] = run_detector(JavaDetector(), root)
        assert payload.name == "ledger"
        assert payload.type == "gradle-project"
        assert {"gradle", "postgresql"} <= set(payload.techs)
        assert _deps(payload) == [("gradle", "org.postgresql:postgresql", "42.7.1", "prod", True, "build.gradle")]

    PARENT = """<project>
  <groupId>com.acme</groupId>
  <artifactId>platform</artifactId>
  <version>1.0.0</version>
  <packaging>pom</packaging>
  <properties><pg.version>42.7.1</pg.version></properties>
</project>"""
    CHILD = """<project>
  <parent><groupId>com.acme</groupId><artifactId>platform</artifactId><version>1.0.0</version></parent>
  <artifactId>svc</artifactId>
  <dependencies>
    <dependency><groupId>org.postgresql</groupId><artifactId>postgresql</artifactId><version>${pg.version}</version></dependency>
    <dependency><groupId>redis.clients</groupId><artifactId>jedis</artifactId><version>5.1.0</version></dependency>
  </dependencies>
</project>"""

    def test_properties_resolved_from_parent_pom(self, write_tree, run_detector):
        root = write_tree({"pom.xml": self.PARENT, "svc/pom.xml": self.CHILD})
        [payload] = run_detector(JavaDetector(), root, root / "svc")
        assert payload.name == "svc"
        assert payload.properties["package_names"] == {"maven": "com.acme:svc"}
        assert _deps(payload) == [
            ("maven", "org.postgresql:postgresql", "42.7.1", "prod", True, "pom.xml"),
            ("maven", "redis.clients:jedis", "5.1.0", "prod", True, "pom.xml"),
        ]

    def test_dependency_list_wins_over_parent_properties(self, write_tree, run_detector):
        root = write_tree({
            "pom.xml": self.PARENT,
            "svc/pom.xml": self.CHILD,
            "svc/dependency-list.txt": (
                "The following files have been resolved:\n"
                "   org.postgresql:postgresql:jar:42.7.3:compile\n"
                "   org.checkerframework:checker-qual:jar:3.41.0:runtime\n"
            ),
        })
        [payload] = run_detector(JavaDetector(), root, root / "svc")
        assert _deps(payload) == [
            ("maven", "org.postgresql:postgresql", "42.7.3", "prod", True, "dependency-list.txt"),
            ("maven", "redis.clients:jedis", "5.1.0", "prod", True, "pom.xml"),
        ]
        assert {"postgresql", "redis"} <= set(payload.techs)

    def test_unrelated_parent_pom_is_ignored(self, write_tree, run_detector):
        root = write_tree({
            "pom.xml": self.PARENT.replace("<artifactId>platform</artifactId>", "<artifactId>tools</artifactId>"),
            "svc/pom.xml": self.CHILD,
        })
        [payload] = run_detector(JavaDetector(), root, root / "svc")
        assert _deps(payload)[0][2] == "${pg.version}"

    def test_parent_pom_outside_scan_root_is_not_read(self, write_tree, run_detector):
        root = write_tree({"pom.xml": self.PARENT, "svc/pom.xml": self.CHILD})
        [payload] = run_detector(JavaDetector(), root / "svc")
        assert _deps(payload)[0][2] == "${pg.version}"


def test_golang_module(write_tree, run_detector):
    root = write_tree({"go.mod": (
        "module github.com/acme/api\n\ngo 1.22\n\nrequire (\n"
        "\tgithub.com/redis/go-redis/v9 v9.3.0\n\tgolang.org/x/net v0.19.0 // indirect\n)\n"
    )})
    [payload] = run_detector(GolangDetector(), root)
    assert payload.name == "github.com/acme/api"
    assert payload.properties["go_version"] == "1.22"
    assert "redis" in payload.techs
    assert [d.name for d in payload.dependencies] == ["github.com/redis/go-redis/v9"]
    [payload] = run_detector(GolangDetector(), root, include_transitive=True)
    assert [d.name for d in payload.dependencies] == ["github.com/redis/go-redis/v9", "golang.org/x/net"]


class TestRustDetector:
    def test_crate(self, write_tree, run_detector):
        root = write_tree({"Cargo.toml": '[package]\nname = "engine"\n\n[dependencies]\nredis = "0.24"\n'})
        [payload] = run_detector(RustDetector(), root)
        assert payload.name == "engine"
        assert payload.type == "cargo-crate"
        assert {"rust", "cargo", "redis"} <= set(payload.techs)

    def test_workspace_manifest_is_virtual(self, write_tree, run_detector):
        root = write_tree({"Cargo.toml": '[workspace]\nmembers = ["crates/a"]\n'})
        [payload] = run_detector(RustDetector(), root)
        assert payload.is_virtual
        assert payload.properties["cargo_workspace_members"] == ["crates/a"]

    def test_cargo_lock_next_to_manifest(self, write_tree, run_detector):
        root = write_tree({
            "Cargo.toml": '[package]\nname = "engine"\n\n[dependencies]\nredis = "0.24"\nserde = "1"\n',
            "Cargo.lock": (
                'version = 3\n\n[[package]]\nname = "engine"\nversion = "0.1.0"\n\n'
                '[[package]]\nname = "redis"\nversion = "0.24.0"\n\n'
                '[[package]]\nname = "itoa"\nversion = "1.0.10"\n'
            ),
        })
        [payload] = run_detector(RustDetector(), root)
        assert _deps(payload) == [
            ("cargo", "redis", "0.24.0", "prod", True, "Cargo.lock"),
            ("cargo", "serde", "1", "prod", True, "Cargo.toml"),
        ]


def test_php_project(write_tree, run_detector):
    root = write_tree({"composer.json": json.dumps({
        "name": "acme/shop",
        "require": {"php": ">=8.1", "predis/predis": "^2.2"},
    })})
    [payload] = run_detector(PhpDetector(), root)
    assert payload.name == "acme/shop"
    assert payload.type == "composer-package"
    assert payload.tech == ["php"]
    assert "composer" in payload.techs
    assert [d.name for d in payload.dependencies] == ["predis/predis"]


def test_php_composer_lock_wins(write_tree, run_detector):
    root = write_tree({
        "composer.json": json.dumps({
            "name": "acme/shop",
            "require": {"predis/predis": "^2.2", "monolog/monolog": "^3.0"},
        }),
        "composer.lock": json.dumps({
            "packages": [
                {"name": "predis/predis", "version": "v2.2.2"},
                {"name": "psr/log", "version": "3.0.0"},
            ],
            "packages-dev": [],
        }),
    })
    [payload] = run_detector(PhpDetector(), root)
    assert _deps(payload) == [
        ("php", "predis/predis", "v2.2.2", "prod", True, "composer.lock"),
        ("php", "monolog/monolog", "^3.0", "prod", True, "composer.json"),
    ]


def test_ruby_project(write_tree, run_detector):
    root = write_tree({
        "Gemfile": 'source "https://rubygems.org"\ngem "rails", "~> 7.1"\n',
        "shop.gemspec": "",
    })
    [payload] = run_detector(RubyDetector(), root)
    assert payload.name == "shop"
    assert payload.type == "ruby-project"
    assert {"ruby", "bundler"} <= set(payload.techs)
    assert _deps(payload) == [("ruby", "rails", "~> 7.1", "prod", True, "Gemfile")]


def test_ruby_gemfile_lock_wins(write_tree, run_detector):
    root = write_tree({
        "Gemfile": 'source "https://rubygems.org"\ngem "rails", "~> 7.1"\ngem "pg"\n',
        "Gemfile.lock": (
            "GEM\n  remote: https://rubygems.org/\n  specs:\n"
            "    rails (7.1.2)\n      actionpack (= 7.1.2)\n    actionpack (7.1.2)\n\n"
            "PLATFORMS\n  ruby\n\nDEPENDENCIES\n  rails (~> 7.1)\n"
        ),
    })
    [payload] = run_detector(RubyDetector(), root)
    assert _deps(payload) == [
        ("ruby", "rails", "7.1.2", "prod", True, "Gemfile.lock"),
        ("ruby", "pg", "", "prod", True, "Gemfile"),
    ]
    assert "postgresql" in payload.techs


def test_dotnet_projects(write_tree, run_detector):
    root = write_tree({
        "Orders.csproj": (
            '<Project Sdk="Microsoft.NET.Sdk"><PropertyGroup><TargetFramework>net8.0</TargetFramework>'
            '</PropertyGroup><ItemGroup><PackageReference Include="Npgsql" Version="8.0.1" /></ItemGroup></Project>'
        ),
    })
    [payload] = run_detector(DotnetDetector(), root)
    assert payload.name == "Orders"
    assert payload.type == "dotnet-project"
    assert payload.tech == ["dotnet"]
    assert payload.properties["target_frameworks"] == ["net8.0"]
    assert [d.name for d in payload.dependencies] == ["Npgsql"]


CENTRAL_VERSIONS = (
    '<Project><ItemGroup><PackageVersion Include="npgsql" Version="8.0.3" /></ItemGroup></Project>'
)
UNVERSIONED_PROJECT = (
    '<Project Sdk="Microsoft.NET.Sdk"><ItemGroup><PackageReference Include="Npgsql" /></ItemGroup></Project>'
)


def test_dotnet_central_versions_from_ancestor(write_tree, run_detector):
    root = write_tree({
        "Directory.Packages.props": CENTRAL_VERSIONS,
        "src/Orders/Orders.csproj": UNVERSIONED_PROJECT,
    })
    [payload] = run_detector(DotnetDetector(), root, root / "src" / "Orders")
    assert _deps(payload) == [("nuget", "Npgsql", "8.0.3", "prod", True, "Orders.csproj")]
    assert "postgresql" in payload.techs


def test_dotnet_central_versions_outside_scan_root(write_tree, run_detector):
    root = write_tree({
        "Directory.Packages.props": CENTRAL_VERSIONS,
        "app/Orders.csproj": UNVERSIONED_PROJECT,
    })
    [payload] = run_detector(DotnetDetector(), root / "app")
    assert _deps(payload) == [("nuget", "Npgsql", "", "prod", True, "Orders.csproj")]


class TestDenoDetector:
    CONFIG = json.dumps({
        "name": "@acme/api",
        "imports": {"@oak/oak": "jsr:@oak/oak@^14", "express": "npm:express@^4.18.2"},
    })

    def test_named_config_is_a_component(self, write_tree, run_detector):
        root = write_tree({"deno.json": self.CONFIG})
        [payload] = run_detector(DenoDetector(), root)
        assert payload.name == "@acme/api"
        assert payload.type == "deno-module"
        assert payload.tech == ["deno"]
        assert {"oak", "express"} <= set(payload.techs)
        assert payload.properties["package_names"] == {"deno": "@acme/api"}

    def test_lock_version_wins(self, write_tree, run_detector):
        root = write_tree({
            "deno.json": self.CONFIG,
            "deno.lock": json.dumps({
                "version": "4",
                "specifiers": {"jsr:@oak/oak@^14": "14.2.0"},
                "jsr": {"@oak/oak@14.2.0": {}, "@std/path@0.221.0": {}},
            }),
        })
        [payload] = run_detector(DenoDetector(), root)
        assert _deps(payload) == [
            ("deno", "@oak/oak", "14.2.0", "prod", True, "deno.lock"),
            ("npm", "express", "^4.18.2", "prod", True, "deno.json"),
        ]

    def test_unnamed_config_tags_enclosing_node(self, write_tree, run_detector):
        root = write_tree({"deno.jsonc": '{\n  // tasks only\n  "tasks": {"dev": "deno run main.ts"},\n}\n'})
        [payload] = run_detector(DenoDetector(), root)
        assert payload.is_virtual
        assert payload.reason["deno"] == ["matched file: deno.jsonc"]


class TestCocoapodsDetector:
    PODFILE = "platform :ios, '15.0'\n\ntarget 'Shop' do\n  pod 'Alamofire', '~> 5.8'\n  pod 'Sentry'\nend\n"

    def test_named_after_first_target(self, write_tree, run_detector):
        root = write_tree({"Podfile": self.PODFILE})
        [payload] = run_detector(CocoapodsDetector(), root)
        assert payload.name == "Shop"
        assert payload.type == "cocoapods-project"
        assert payload.tech == ["cocoapods"]
        assert payload.properties["platform"] == "ios 15.0"
        assert "sentry" in payload.techs

    def test_podfile_lock_wins(self, write_tree, run_detector):
        root = write_tree({
            "Podfile": self.PODFILE,
            "Podfile.lock": "PODS:\n  - Alamofire (5.8.1)\n\nDEPENDENCIES:\n  - Alamofire (~> 5.8)\n",
        })
        [payload] = run_detector(CocoapodsDetector(), root)
        assert _deps(payload) == [
            ("cocoapods", "Alamofire", "5.8.1", "prod", True, "Podfile.lock"),
            ("cocoapods", "Sentry", "", "prod", True, "Podfile"),
        ]


class TestCplusplusDetector:
    def test_conanfile_txt_with_lock(self, write_tree, run_detector):
        root = write_tree({
            "viewer/conanfile.txt": "[requires]\nqt/6.6.1\nlibpq/15.4\n",
            "viewer/conan.lock": json.dumps({"version": "0.5", "requires": ["qt/6.6.2#r1%1"]}),
        })
        [payload] = run_detector(CplusplusDetector(), root, root / "viewer")
        assert payload.name == "viewer"
        assert payload.type == "conan-package"
        assert payload.tech == ["cplusplus"]
        assert {"conan", "qt", "postgresql"} <= set(payload.techs)
        assert _deps(payload) == [
            ("conan", "qt", "6.6.2", "prod", True, "conan.lock"),
            ("conan", "libpq", "15.4", "prod", True, "conanfile.txt"),
        ]

    def test_conanfile_py_wins_and_names_the_package(self, write_tree, run_detector):
        root = write_tree({
            "conanfile.txt": "[requires]\nzlib/1.3\n",
            "conanfile.py": 'class ViewerConan(ConanFile):\n    name = "viewer"\n    requires = "fmt/10.1.1"\n',
        })
        [payload] = run_detector(CplusplusDetector(), root)
        assert payload.name == "viewer"
        assert payload.reason["cplusplus"] == ["matched file: conanfile.py"]
        assert payload.properties["package_names"] == {"conan": "viewer"}
        assert [d.name for d in payload.dependencies] == ["fmt"]


def test_delphi_project_per_dproj(write_tree, run_detector):
    root = write_tree({
        "Shop.dproj": (
            '<Project xmlns="http://schemas.microsoft.com/developer/msbuild/2003">'
            "<PropertyGroup><MainSource>Shop.dpr</MainSource><FrameworkType>VCL</FrameworkType></PropertyGroup>"
            "<PropertyGroup><DCC_UsePackage>vcl;vclimg;FireDAC;$(DCC_UsePackage)</DCC_UsePackage></PropertyGroup>"
            "</Project>"
        ),
        "Tools.dproj": "<Project><PropertyGroup><MainSource>Tools.dpr</MainSource></PropertyGroup></Project>",
        "Broken.dproj": "<Project",
    })
    shop, tools = run_detector(DelphiDetector(), root)
    assert shop.name == "Shop"
    assert shop.type == "delphi-project"
    assert shop.tech == ["delphi"]
    assert shop.properties["main_source"] == "Shop.dpr"
    assert shop.reason["vcl"][0] == "xml path $.Project.PropertyGroup.FrameworkType equals VCL in Shop.dproj"
    assert [d.name for d in shop.dependencies] == ["vcl", "vclimg", "FireDAC"]
    assert tools.name == "Tools"
    assert "vcl" not in tools.techs


class TestDockerDetector:
    def test_dockerfile_is_virtual(self, write_tree, run_detector):
        root = write_tree({"Dockerfile": "FROM node:20 AS build\nFROM nginx:1.25\nEXPOSE 80\n"})
        [payload] = run_detector(DockerDetector(), root)
        assert payload.is_virtual
        assert {"docker", "nginx"} <= set(payload.techs)
        assert [(d.name, d.version, d.scope) for d in payload.component_dependencies] == [
            ("node", "20", "build"),
            ("nginx", "1.25", "build"),
        ]
        assert payload.properties["docker"] == [{
            "file": "Dockerfile",
            "base_images": ["node:20", "nginx:1.25"],
            "stages": ["build"],
            "exposed_ports": ["80"],
        }]

    def test_compose_services_with_images_become_children(self, write_tree, run_detector):
        root = write_tree({"docker-compose.yml": (
            "services:\n  api:\n    build: .\n  db:\n    image: postgres:16\n    ports:\n      - \"5432:5432\"\n"
        )})
        [holder] = run_detector(DockerDetector(), root)
        assert holder.is_virtual
        assert holder.techs == ["dockercompose"]
        [db] = holder.children
        assert db.name == "db"
        assert db.type == "service"
        assert db.tech == ["postgresql"]
        assert db.properties["ports"] == ["5432:5432"]
        assert [(d.name, d.version) for d in db.component_dependencies] == [("postgres", "16")]


def test_terraform_providers(write_tree, run_detector):
    root = write_tree({
        "main.tf": 'provider "aws" {\n  region = "eu-west-1"\n}\n\nresource "aws_s3_bucket" "assets" {\n}\n',
    })
    [payload] = run_detector(TerraformDetector(), root)
    assert payload.is_virtual
    assert {"terraform", "aws"} <= set(payload.techs)
    assert payload.properties["terraform"] == {"resources": ["aws_s3_bucket.assets"]}


class TestGithubActionsDetector:
    WORKFLOW = "name: CI\non: push\njobs:\n  test:\n    runs-on: ubuntu-latest\n    steps:\n      - uses: actions/checkout@v4\n"

    def test_only_in_workflows_directory(self, write_tree, run_detector):
        root = write_tree({".github/workflows/ci.yml": self.WORKFLOW, "ci.yml": self.WORKFLOW})
        assert run_detector(GithubActionsDetector(), root) == []
        [payload] = run_detector(GithubActionsDetector(), root, root / ".github" / "workflows")
        assert payload.is_virtual
        assert payload.techs == ["githubactions"]
        assert payload.reason["githubactions"][0] == "matched file: .github/workflows/ci.yml"
        assert payload.properties["workflows"] == ["CI"]
        assert [(d.ecosystem, d.name, d.version) for d in payload.component_dependencies] == [
            ("githubAction", "actions/checkout", "v4"),
        ]

    def test_non_workflow_yaml(self, write_tree, run_detector):
        root = write_tree({".github/workflows/notes.yml": "just: text\n"})
        assert run_detector(GithubActionsDetector(), root, root / ".github" / "workflows") == []


def test_dotenv_template(write_tree, run_detector):
    root = write_tree({".env.example": "POSTGRES_PASSWORD=\nexport APP_PORT=8080\n", ".env": "SECRET=1\n"})
    [payload] = run_detector(DotenvDetector(), root)
    assert payload.is_virtual
    assert payload.techs == ["postgresql"]
    assert payload.reason["postgresql"] == ["postgresql matched env: POSTGRES_PASSWORD"]


def test_dotenv_without_matches(write_tree, run_detector):
    root = write_tree({".env.example": "APP_PORT=8080\n"})
    assert run_detector(DotenvDetector(), root) == []


def test_dotenv_reads_every_template(write_tree, run_detector):
    root = write_tree({
        ".env.example": "POSTGRES_PASSWORD=\n",
        ".env.template": "REDIS_URL=\n",
    })
    [payload] = run_detector(DotenvDetector(), root)
    assert set(payload.techs) == {"postgresql", "redis"}
    assert payload.reason["redis"] == ["redis matched env: REDIS_URL"]
